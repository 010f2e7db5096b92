# zlot/services/store.py
"""
Narrow write primitives shared by every service.
Inserts are flushed immediately so callers get the row (and its id) back,
or an UpstreamError when the datastore hands nothing back.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from zlot.errors import UpstreamError
from zlot.utils.logger import get_logger

logger = get_logger(__name__)


def insert_row(db: Session, row, label: str):
    """Add + flush one row. Does not commit; the caller owns the transaction."""
    try:
        db.add(row)
        db.flush()
    except SQLAlchemyError as e:
        logger.error(f"{label} insert failed: {e}")
        raise UpstreamError(f"{label} was not created: {e.__class__.__name__}") from e
    if row.id is None:
        raise UpstreamError(f"{label} was not created.")
    return row


def commit_or_rollback(db: Session):
    """Commit; on failure roll back so the session is usable again, then re-raise."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
