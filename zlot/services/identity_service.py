# zlot/services/identity_service.py
"""
Identity Gate.
Verifies bearer tokens against the identity provider (Supabase-style
GET {AUTH_URL}/auth/v1/user) and resolves admin role claims, falling back
to the profiles table when the token carries no role.
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx
from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from zlot.config import settings
from zlot.database import get_db
from zlot.errors import ForbiddenError, InternalError, UnauthorizedError
from zlot.models.profile import Profile
from zlot.utils.json_parser import get_nested, normalize_role
from zlot.utils.logger import get_logger

logger = get_logger(__name__)

ADMIN_ROLE = "admin"


@dataclass
class Principal:
    id: str
    email: Optional[str] = None
    user_metadata: dict = field(default_factory=dict)
    app_metadata: dict = field(default_factory=dict)

    @classmethod
    def from_user(cls, user: dict) -> "Principal":
        return cls(
            id=str(user["id"]),
            email=user.get("email"),
            user_metadata=user.get("user_metadata") or {},
            app_metadata=user.get("app_metadata") or {},
        )


@dataclass
class AdminContext:
    user: Principal
    profile: Optional[Profile] = None


class IdentityProvider:
    """Thin async client for the identity provider's user endpoint."""

    def __init__(self, base_url: str = None, api_key: str = None, timeout: float = None,
                 transport: httpx.AsyncBaseTransport = None):
        self.base_url = (base_url or settings.AUTH_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.SERVICE_ROLE_KEY
        self.timeout = timeout or settings.AUTH_TIMEOUT_SECONDS
        self.transport = transport

    async def get_user(self, token: str) -> Optional[dict]:
        """User JSON for a valid token, None when the provider rejects it."""
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Identity provider unreachable: {e}")
            return None
        if resp.status_code != 200:
            logger.debug(f"Identity provider rejected token → HTTP {resp.status_code}")
            return None
        try:
            user = resp.json()
        except ValueError:
            return None
        return user if isinstance(user, dict) and user.get("id") else None


_provider = IdentityProvider()


def get_identity_provider() -> IdentityProvider:
    """FastAPI dependency, overridden in tests."""
    return _provider


def get_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


async def authenticate(token: Optional[str], provider: IdentityProvider) -> Principal:
    if not token:
        raise UnauthorizedError("Missing Authorization bearer token.")
    user = await provider.get_user(token)
    if not user:
        raise UnauthorizedError("Invalid or expired session token.")
    return Principal.from_user(user)


def is_admin_from_claims(principal: Principal) -> bool:
    claims = {"user_metadata": principal.user_metadata, "app_metadata": principal.app_metadata}
    role = (
        normalize_role(get_nested(claims, "user_metadata", "role"))
        or normalize_role(get_nested(claims, "app_metadata", "role"))
        or normalize_role(get_nested(claims, "user_metadata", "account_type"))
        or normalize_role(get_nested(claims, "app_metadata", "account_type"))
    )
    return role == ADMIN_ROLE


def is_admin_from_profile(profile: Optional[Profile]) -> bool:
    if profile is None:
        return False
    if profile.is_admin is True:
        return True
    return (normalize_role(profile.role) or normalize_role(profile.account_type)) == ADMIN_ROLE


def authorize_admin(principal: Principal, db: Session) -> AdminContext:
    """Claims first, then the profile row. Profile lookup errors are InternalError."""
    if is_admin_from_claims(principal):
        return AdminContext(user=principal)

    try:
        profile = db.query(Profile).filter(Profile.id == principal.id).first()
    except SQLAlchemyError as e:
        logger.error(f"Admin profile lookup failed for {principal.id}: {e}")
        raise InternalError("Unable to validate admin profile role.") from e

    if not is_admin_from_profile(profile):
        raise ForbiddenError("Admin access required.")
    return AdminContext(user=principal, profile=profile)


# ── FastAPI dependencies ─────────────────────────────────────────────────────

async def get_current_user(
    request: Request, provider: IdentityProvider = Depends(get_identity_provider)
) -> Principal:
    token = get_bearer_token(request.headers.get("Authorization"))
    return await authenticate(token, provider)


def get_admin_user(
    principal: Principal = Depends(get_current_user), db: Session = Depends(get_db)
) -> AdminContext:
    return authorize_admin(principal, db)


def ensure_same_user(principal: Principal, requested_user_id: Optional[str]):
    """Bodies may echo user_id; it must be the caller's own."""
    requested = (requested_user_id or "").strip()
    if requested and requested != principal.id:
        raise ForbiddenError("user_id does not match authenticated user.")
