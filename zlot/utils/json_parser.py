# zlot/utils/json_parser.py
"""
Helpers for the JSON the identity provider hands us:
JWT payloads (service key role check) and nested user metadata claims.
"""

import base64
import json
from typing import Optional, Any


def decode_jwt_payload(token: Optional[str]) -> Optional[dict]:
    """Decode the (unverified) payload segment of a JWT. Returns None on error."""
    if not token:
        return None
    parts = token.split(".")
    if len(parts) < 2:
        return None
    segment = parts[1].replace("-", "+").replace("_", "/")
    segment += "=" * (-len(segment) % 4)
    try:
        payload = json.loads(base64.b64decode(segment).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def get_nested(data: dict, *keys: str, default: Any = None) -> Any:
    """Safely navigate nested dict keys. Returns default if any key is missing."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key, default)
        if current is default:
            return default
    return current


def normalize_role(value: Any) -> Optional[str]:
    """Trimmed, lower-cased role string, or None for blanks and non-strings."""
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized or None
