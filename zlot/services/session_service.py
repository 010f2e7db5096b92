# zlot/services/session_service.py
"""
Direct session start (no booking / payment step), used by the pilot kiosk.
Same guard, slot resolution and gate arming as the pay path, one transaction.
"""

from typing import Optional
from sqlalchemy.orm import Session
from zlot.config import settings
from zlot.errors import ConflictError, InvalidStateError
from zlot.services.booking_service import open_session, arm_gate
from zlot.services.session_guard import ensure_no_conflicting_session
from zlot.services.slot_service import resolve_active_slot
from zlot.services.store import commit_or_rollback
from zlot.utils.logger import get_logger

logger = get_logger(__name__)


def start_session(db: Session, user_id: str, slot_id: Optional[str] = None):
    """Returns (session, slot). A live session is reported as 400 on this endpoint."""
    try:
        ensure_no_conflicting_session(db, user_id)
    except ConflictError as e:
        raise InvalidStateError("User already has an active parking session", **e.extra) from e

    slot = resolve_active_slot(db, slot_id=slot_id, device_id=settings.DEFAULT_DEVICE_ID)
    if slot is None:
        raise InvalidStateError("No active parking slot is available. Add an active row in parking_slots.")

    try:
        session = open_session(db, user_id, slot)
        arm_gate(db, session)
        commit_or_rollback(db)
    except Exception:
        db.rollback()
        raise

    logger.info(f"[SESSION] {session.id} started for user {user_id} on {session.device_id}")
    return session, slot
