"""Unit tests for bearer-token verification and admin resolution."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import httpx
import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError
from zlot.errors import ForbiddenError, InternalError, UnauthorizedError
from zlot.models.profile import Profile
from zlot.services.identity_service import (
    IdentityProvider, Principal, authenticate, authorize_admin,
    ensure_same_user, get_bearer_token, is_admin_from_claims,
)
from conftest import USER_ID, OTHER_USER_ID, FakeIdentityProvider


def provider_with(handler):
    return IdentityProvider(base_url="http://auth.test/", api_key="svc-key", timeout=2,
                            transport=httpx.MockTransport(handler))


class TestGetBearerToken:
    def test_parses_bearer(self):
        assert get_bearer_token("Bearer abc.def") == "abc.def"
        assert get_bearer_token("bearer   tok ") == "tok"

    def test_rejects_other_schemes_and_blanks(self):
        assert get_bearer_token(None) is None
        assert get_bearer_token("Basic dXNlcg==") is None
        assert get_bearer_token("Bearer ") is None
        assert get_bearer_token("token-without-scheme") is None


class TestIdentityProvider:
    @pytest.mark.asyncio
    async def test_valid_token_returns_user(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["apikey"] = request.headers.get("apikey")
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"id": USER_ID, "email": "driver@example.com"})

        user = await provider_with(handler).get_user("tok")
        assert user["id"] == USER_ID
        assert seen == {"url": "http://auth.test/auth/v1/user", "apikey": "svc-key", "auth": "Bearer tok"}

    @pytest.mark.asyncio
    async def test_rejected_token_returns_none(self):
        provider = provider_with(lambda request: httpx.Response(401, json={"msg": "expired"}))
        assert await provider.get_user("tok") is None

    @pytest.mark.asyncio
    async def test_unreachable_provider_returns_none(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)
        assert await provider_with(handler).get_user("tok") is None

    @pytest.mark.asyncio
    async def test_body_without_id_returns_none(self):
        provider = provider_with(lambda request: httpx.Response(200, json={"email": "x@example.com"}))
        assert await provider.get_user("tok") is None


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_missing_token(self):
        with pytest.raises(UnauthorizedError):
            await authenticate(None, FakeIdentityProvider({}))

    @pytest.mark.asyncio
    async def test_unknown_token(self):
        with pytest.raises(UnauthorizedError):
            await authenticate("nope", FakeIdentityProvider({}))

    @pytest.mark.asyncio
    async def test_known_token_builds_principal(self):
        provider = FakeIdentityProvider({"t": {"id": USER_ID, "email": "a@b.c", "user_metadata": None}})
        principal = await authenticate("t", provider)
        assert principal.id == USER_ID
        assert principal.user_metadata == {}


class TestAdminClaims:
    def test_user_metadata_role(self):
        assert is_admin_from_claims(Principal(id=USER_ID, user_metadata={"role": " Admin "}))

    def test_app_metadata_role(self):
        assert is_admin_from_claims(Principal(id=USER_ID, app_metadata={"role": "admin"}))

    def test_account_type_used_when_no_role(self):
        assert is_admin_from_claims(Principal(id=USER_ID, app_metadata={"account_type": "ADMIN"}))

    def test_user_metadata_role_takes_precedence(self):
        principal = Principal(id=USER_ID, user_metadata={"role": "driver"}, app_metadata={"role": "admin"})
        assert not is_admin_from_claims(principal)


class TestAuthorizeAdmin:
    def test_claims_admin_skips_profile(self):
        db = MagicMock()
        ctx = authorize_admin(Principal(id=USER_ID, app_metadata={"role": "admin"}), db)
        assert ctx.user.id == USER_ID
        assert ctx.profile is None
        db.query.assert_not_called()

    def test_profile_fallback(self, db):
        db.add(Profile(id=USER_ID, email="ops@example.com", role="ADMIN"))
        db.commit()
        ctx = authorize_admin(Principal(id=USER_ID), db)
        assert ctx.profile.email == "ops@example.com"

    def test_profile_is_admin_flag(self, db):
        db.add(Profile(id=USER_ID, is_admin=True))
        db.commit()
        assert authorize_admin(Principal(id=USER_ID), db).profile is not None

    def test_non_admin_forbidden(self, db):
        db.add(Profile(id=USER_ID, role="driver"))
        db.commit()
        with pytest.raises(ForbiddenError):
            authorize_admin(Principal(id=USER_ID), db)

    def test_no_profile_forbidden(self, db):
        with pytest.raises(ForbiddenError):
            authorize_admin(Principal(id=USER_ID), db)

    def test_profile_lookup_failure_is_internal(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        with pytest.raises(InternalError):
            authorize_admin(Principal(id=USER_ID), db)


class TestEnsureSameUser:
    def test_blank_or_matching_is_fine(self):
        principal = Principal(id=USER_ID)
        ensure_same_user(principal, None)
        ensure_same_user(principal, "")
        ensure_same_user(principal, USER_ID)

    def test_mismatch_forbidden(self):
        with pytest.raises(ForbiddenError):
            ensure_same_user(Principal(id=USER_ID), OTHER_USER_ID)
