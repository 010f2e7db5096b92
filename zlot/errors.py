# zlot/errors.py
"""
Error taxonomy for the booking / session / gate core.
Every error carries its HTTP status so routes stay thin: services raise,
the handlers in main.py turn the error into {"error": message, **extra}.
"""

from typing import Any


class ZlotError(Exception):
    """Base class. `extra` is merged into the JSON error body."""

    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_body(self) -> dict:
        return {"error": self.message, **self.extra}


class BadRequestError(ZlotError):
    """Malformed or missing request fields."""
    status_code = 400


class UnauthorizedError(ZlotError):
    status_code = 401


class ForbiddenError(ZlotError):
    status_code = 403


class NotFoundError(ZlotError):
    status_code = 404


class InvalidStateError(ZlotError):
    """Request inconsistent with current entity state (inactive slot, cancelled booking)."""
    status_code = 400


class ConflictError(ZlotError):
    """Invariant violation: live session already exists, booking already paid."""
    status_code = 409


class UpstreamError(ZlotError):
    """A datastore write did not hand back the row it should have."""
    status_code = 502


class InternalError(ZlotError):
    status_code = 500
