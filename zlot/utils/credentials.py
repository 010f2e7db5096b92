# zlot/utils/credentials.py
"""
Guard against running the backend with a non-privileged credential.
Booking, session and command writes all need the service_role key; an anon key
would make every write fail (or silently return no rows), so refuse up front.
"""

from typing import Optional

from zlot.config import settings
from zlot.errors import InternalError
from zlot.utils.json_parser import decode_jwt_payload


def service_key_role(key: Optional[str] = None) -> Optional[str]:
    """Role claim embedded in the service key, if it is JWT-shaped."""
    payload = decode_jwt_payload(key if key is not None else settings.SERVICE_ROLE_KEY)
    return payload.get("role") if payload else None


def assert_service_role_key(key: Optional[str] = None):
    """Raise InternalError when the key is missing or is an anon key."""
    key = key if key is not None else settings.SERVICE_ROLE_KEY
    if not key:
        raise InternalError("Missing SERVICE_ROLE_KEY in backend env.")
    if service_key_role(key) == "anon":
        raise InternalError(
            "Backend is using an anon key. Set SERVICE_ROLE_KEY to the service_role key."
        )


def require_service_role():
    """FastAPI dependency: refuse to operate without a privileged key."""
    assert_service_role_key()
