# zlot/services/close_scheduler.py
"""
Close sweeper: fires persisted delayed gate closes.

Replaces in-process timers: pay / session start / gate open write a
ScheduledClose row, and this loop picks up every row whose due_at has passed:
  1. claim the row (fired_at stamped only if still NULL)
  2. queue CLOSE for the device
  3. if the row belongs to a session, mark that session COMPLETED
All three commit together. A row another worker already claimed is skipped.
A failing row is logged, stamped with its error and never retried.
After the due rows, overdue sessions without a scheduled close are expired too.

DB work is blocking, so each tick runs in a worker thread, off the event loop.
"""

import asyncio
from contextlib import suppress
from datetime import datetime
from sqlalchemy.orm import Session
from zlot.config import settings
from zlot.database import SessionLocal
from zlot.models.parking_session import ParkingSession
from zlot.models.scheduled_close import ScheduledClose
from zlot.services.command_service import enqueue_command
from zlot.services.session_guard import expire_overdue_sessions
from zlot.services.store import commit_or_rollback
from zlot.utils.logger import get_logger

logger = get_logger(__name__)

_BATCH_SIZE = 100


def _claim(db: Session, row_id: str, now: datetime) -> bool:
    """Conditional UPDATE; False when another sweeper got there first. No commit."""
    claimed = (
        db.query(ScheduledClose)
        .filter(ScheduledClose.id == row_id, ScheduledClose.fired_at == None)  # noqa: E711
        .update({ScheduledClose.fired_at: now}, synchronize_session=False)
    )
    return claimed == 1


def _fire(db: Session, row_id: str, device_id: str, session_id: str, now: datetime) -> bool:
    if not _claim(db, row_id, now):
        db.rollback()
        return False
    enqueue_command(db, "CLOSE", device_id)
    if session_id:
        db.query(ParkingSession).filter(ParkingSession.id == session_id).update(
            {ParkingSession.status: "COMPLETED"}, synchronize_session=False
        )
    commit_or_rollback(db)
    return True


def _mark_failed(db: Session, row_id: str, now: datetime, error: Exception):
    db.query(ScheduledClose).filter(ScheduledClose.id == row_id).update(
        {ScheduledClose.fired_at: now, ScheduledClose.error: str(error)[:1000]},
        synchronize_session=False,
    )
    commit_or_rollback(db)


def run_due_closes(db: Session, now: datetime = None) -> int:
    """Fire every unfired close due at or before `now`. Returns how many this call fired."""
    now = now or datetime.utcnow()
    due = [
        (row.id, row.device_id, row.session_id)
        for row in db.query(ScheduledClose)
        .filter(ScheduledClose.fired_at == None, ScheduledClose.due_at <= now)  # noqa: E711
        .order_by(ScheduledClose.due_at.asc())
        .limit(_BATCH_SIZE)
        .all()
    ]
    db.rollback()

    fired = 0
    for row_id, device_id, session_id in due:
        try:
            if not _fire(db, row_id, device_id, session_id, now):
                logger.debug(f"[SWEEP] Close {row_id} already claimed, skipping")
                continue
            fired += 1
            logger.info(f"[SWEEP] Auto-close fired for {device_id}" + (f", session {session_id} completed" if session_id else ""))
        except Exception as e:
            db.rollback()
            logger.error(f"[SWEEP] Failed to auto-close {device_id} (session {session_id}): {e}", exc_info=True)
            _mark_failed(db, row_id, now, e)

    expire_overdue_sessions(db, now=now)
    return fired


def _sweep_once():
    # Fresh DB session per tick
    db = SessionLocal()
    try:
        run_due_closes(db)
    finally:
        db.close()


async def _sweep_forever(interval: float):
    logger.info(f"⏱  Close sweeper running every {interval}s")
    while True:
        try:
            await asyncio.to_thread(_sweep_once)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[SWEEP] tick failed: {e}", exc_info=True)
        await asyncio.sleep(interval)


def start_close_sweeper(interval: float = None) -> asyncio.Task:
    """Launch the sweeper task. Called once at backend startup."""
    interval = interval or settings.CLOSE_SWEEP_INTERVAL_SECONDS
    return asyncio.create_task(_sweep_forever(interval), name="close-sweeper")


async def stop_close_sweeper(task: asyncio.Task):
    """Cancel the sweeper and wait for it to unwind."""
    if task is None or task.done():
        return
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task
