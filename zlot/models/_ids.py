# zlot/models/_ids.py
import uuid


def new_uuid() -> str:
    """String UUID primary keys, same shape the identity provider uses for users."""
    return str(uuid.uuid4())
