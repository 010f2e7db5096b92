# zlot/services/session_guard.py
"""
Session Guard: at most one live (ACTIVE / IN_PROGRESS) session per user.

Every booking attempt first expires the user's overdue sessions, then looks at
the newest few still marked active. A session with no expiry, or one we cannot
parse, counts as live: treating it as expired could put two cars in one slot.

Best-effort only: check-then-insert is not linearizable across concurrent requests.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session
from zlot.errors import ConflictError
from zlot.models.parking_session import ParkingSession, ACTIVE_SESSION_STATUSES
from zlot.services.store import commit_or_rollback
from zlot.utils.logger import get_logger

logger = get_logger(__name__)

LIVE_SESSION_WINDOW = 10


def _to_naive_utc(value) -> Optional[datetime]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def is_session_live(entry_expiry, now: datetime) -> bool:
    if not entry_expiry:
        return True
    expiry = _to_naive_utc(entry_expiry)
    if expiry is None:
        return True
    return expiry > now


def expire_overdue_sessions(db: Session, now: datetime = None, user_id: str = None) -> int:
    """Mark active sessions past entry_expiry COMPLETED (one user, or everyone). Commits."""
    now = now or datetime.utcnow()
    q = db.query(ParkingSession).filter(
        ParkingSession.status.in_(ACTIVE_SESSION_STATUSES),
        ParkingSession.entry_expiry < now,
    )
    if user_id is not None:
        q = q.filter(ParkingSession.user_id == user_id)
    expired = q.update({ParkingSession.status: "COMPLETED"}, synchronize_session=False)
    commit_or_rollback(db)
    if expired:
        logger.info(f"Expired {expired} overdue session(s){f' for user {user_id}' if user_id else ''}")
    return expired


def find_live_session(db: Session, user_id: str, now: datetime = None) -> Optional[ParkingSession]:
    now = now or datetime.utcnow()
    candidates = (
        db.query(ParkingSession)
        .filter(
            ParkingSession.user_id == user_id,
            ParkingSession.status.in_(ACTIVE_SESSION_STATUSES),
        )
        .order_by(ParkingSession.created_at.desc())
        .limit(LIVE_SESSION_WINDOW)
        .all()
    )
    return next((s for s in candidates if is_session_live(s.entry_expiry, now)), None)


def ensure_no_conflicting_session(db: Session, user_id: str, now: datetime = None):
    now = now or datetime.utcnow()
    expire_overdue_sessions(db, now=now, user_id=user_id)
    live = find_live_session(db, user_id, now=now)
    if live is not None:
        logger.info(f"User {user_id} blocked by live session {live.id}")
        raise ConflictError(
            "User already has an active parking session.",
            active_session_id=live.id,
        )
