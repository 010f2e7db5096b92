# zlot/services/device_service.py
"""
Device Poll / Ack protocol (gate firmware side of the loop).

  Idle → poll → (command) → execute → ack → Idle

Every poll and every ack is a heartbeat (status ONLINE, last_seen now).
poll returns the newest unexecuted command, ref-addressed rows first.
ack does not check which device is calling: any holder of a command id may
acknowledge it (trusted pilot network).
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from zlot.config import settings
from zlot.errors import BadRequestError, NotFoundError, UpstreamError
from zlot.models.command import Command
from zlot.models.device import Device, ONLINE_DEVICE_STATUSES
from zlot.services.slot_service import find_device
from zlot.services.store import commit_or_rollback
from zlot.utils.logger import get_logger

logger = get_logger(__name__)


def is_device_online(device: Device, now: datetime = None) -> bool:
    """Online by status, or seen within DEVICE_ONLINE_WINDOW."""
    if (device.status or "").strip().upper() in ONLINE_DEVICE_STATUSES:
        return True
    if not isinstance(device.last_seen, datetime):
        return False
    now = now or datetime.utcnow()
    return now - device.last_seen <= settings.DEVICE_ONLINE_WINDOW


def _heartbeat(device: Device, now: datetime):
    device.status = "ONLINE"
    device.last_seen = now


def _newest_pending(db: Session, *criteria) -> Optional[Command]:
    return (
        db.query(Command)
        .filter(Command.executed == False, *criteria)  # noqa: E712
        .order_by(Command.created_at.desc())
        .first()
    )


def poll(db: Session, device_id: Optional[str], now: datetime = None) -> Optional[Command]:
    device_id = (device_id or "").strip()
    if not device_id:
        raise BadRequestError("device_id required")

    device = db.query(Device).filter(Device.device_id == device_id).first()
    if device is None:
        raise NotFoundError("Device not found")

    _heartbeat(device, now or datetime.utcnow())
    commit_or_rollback(db)

    command = _newest_pending(db, Command.device_ref == device.id) or _newest_pending(db, Command.device_id == device_id)
    if command is not None:
        logger.info(f"[DEVICE] {device_id} picked up {command.command} ({command.id})")
    return command


def ack(db: Session, command_id: Optional[str], now: datetime = None) -> str:
    command_id = (command_id or "").strip()
    if not command_id:
        raise BadRequestError("command_id required")

    command = db.query(Command).filter(Command.id == command_id).first()
    if command is None:
        raise NotFoundError("Command not found")

    try:
        command.executed = True
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        raise UpstreamError(f"Command {command_id} could not be marked executed: {e}") from e

    device = find_device(db, device_ref=command.device_ref, device_id=command.device_id)
    if device is not None:
        _heartbeat(device, now or datetime.utcnow())
    commit_or_rollback(db)

    logger.info(f"[DEVICE] {command.command} {command_id} acknowledged by {device.device_id if device else 'unknown device'}")
    return command_id
