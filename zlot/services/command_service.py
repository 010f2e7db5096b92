# zlot/services/command_service.py
"""
Gate Command Dispatcher.

Commands are written keyed by the device's string id; if that insert is
refused (ref-keyed schema generation), the device ref is resolved and the
insert retried once by ref. Neither path is assumed to always work alone.

Also owns the persisted delayed close (ScheduledClose) armed by pay,
session start and manual gate open.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from zlot.config import settings
from zlot.errors import UpstreamError, BadRequestError
from zlot.models.command import Command, GATE_COMMANDS
from zlot.models.device import Device
from zlot.models.scheduled_close import ScheduledClose
from zlot.services.store import insert_row
from zlot.utils.logger import get_logger

logger = get_logger(__name__)


def get_device_ref(db: Session, device_id: str) -> Optional[str]:
    device = db.query(Device).filter(Device.device_id == device_id).first()
    return device.id if device else None


def enqueue_command(db: Session, command_type: str, device_id: str = None) -> Command:
    """Queue OPEN/CLOSE for a device. Flushes, does not commit."""
    if command_type not in GATE_COMMANDS:
        raise BadRequestError(f"Unsupported gate command: {command_type}")
    device_id = device_id or settings.DEFAULT_DEVICE_ID

    try:
        with db.begin_nested():
            command = Command(device_id=device_id, command=command_type, executed=False)
            db.add(command)
        logger.info(f"[GATE] {command_type} queued for {device_id}")
        return command
    except SQLAlchemyError as primary_error:
        logger.warning(f"[GATE] {command_type} by device_id failed for {device_id}: {primary_error}, retrying by ref")

    device_ref = get_device_ref(db, device_id)
    if not device_ref:
        raise UpstreamError(f"Command insert failed: device {device_id} could not be resolved.")

    command = insert_row(db, Command(device_ref=device_ref, command=command_type, executed=False), "Command")
    logger.info(f"[GATE] {command_type} queued for {device_id} (ref {device_ref})")
    return command


def schedule_close(
    db: Session, device_id: str, due_at: datetime, session_id: Optional[str] = None
) -> ScheduledClose:
    """Persist a one-shot CLOSE (and optional session completion) for the sweeper."""
    row = insert_row(
        db,
        ScheduledClose(device_id=device_id, session_id=session_id, due_at=due_at),
        "Scheduled close",
    )
    logger.debug(f"[GATE] CLOSE for {device_id} armed at {due_at.isoformat()} session={session_id}")
    return row
