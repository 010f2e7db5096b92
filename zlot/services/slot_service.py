# zlot/services/slot_service.py
"""
Slot Selector.
Resolves the single active slot to book: explicit slot id, else the newest
active slot on the requested device, else (optionally) the newest active slot
anywhere. Callers must treat None as "no bookable slot".
"""

from typing import Optional
from sqlalchemy.orm import Session
from zlot.config import settings
from zlot.errors import InvalidStateError
from zlot.models.device import Device
from zlot.models.parking_slot import ParkingSlot
from zlot.utils.logger import get_logger

logger = get_logger(__name__)


def get_slot(db: Session, slot_id: str) -> Optional[ParkingSlot]:
    return db.query(ParkingSlot).filter(ParkingSlot.id == slot_id).first()


def _newest_active(db: Session, device_id: Optional[str] = None) -> Optional[ParkingSlot]:
    q = db.query(ParkingSlot).filter(ParkingSlot.is_active == True)  # noqa: E712
    if device_id is not None:
        q = q.filter(ParkingSlot.device_id == device_id)
    return q.order_by(ParkingSlot.created_at.desc()).first()


def resolve_active_slot(
    db: Session,
    slot_id: Optional[str] = None,
    device_id: Optional[str] = None,
    fallback_to_any_active: bool = True,
) -> Optional[ParkingSlot]:
    device_id = device_id or settings.DEFAULT_DEVICE_ID

    if slot_id:
        slot = get_slot(db, slot_id)
        if slot is None:
            return None
        if slot.is_active is False:
            raise InvalidStateError("Selected parking slot is inactive.")
        return slot

    slot = _newest_active(db, device_id)
    if slot is not None:
        return slot
    if not fallback_to_any_active:
        return None

    slot = _newest_active(db)
    if slot is not None:
        logger.info(f"No active slot on {device_id}, falling back to {slot.slot_name} ({slot.device_id})")
    return slot


def find_device(db: Session, device_ref: Optional[str] = None, device_id: Optional[str] = None) -> Optional[Device]:
    """Ref first, then string key. Exactly one fallback."""
    if device_ref:
        device = db.query(Device).filter(Device.id == device_ref).first()
        if device is not None:
            return device
    if device_id:
        return db.query(Device).filter(Device.device_id == device_id).first()
    return None


def list_active_slots(db: Session) -> list:
    """Active slots, newest first, each paired with its device row (or None)."""
    slots = (
        db.query(ParkingSlot)
        .filter(ParkingSlot.is_active == True)  # noqa: E712
        .order_by(ParkingSlot.created_at.desc())
        .all()
    )
    if not slots:
        return []

    device_ids = {s.device_id for s in slots if s.device_id}
    device_refs = {s.device_ref for s in slots if s.device_ref}
    devices = []
    if device_ids or device_refs:
        q = db.query(Device)
        if device_ids:
            q = q.filter(Device.device_id.in_(device_ids))
        else:
            q = q.filter(Device.id.in_(device_refs))
        devices = q.limit(500).all()

    by_device_id = {d.device_id: d for d in devices}
    by_ref = {d.id: d for d in devices}
    return [
        (slot, (by_ref.get(slot.device_ref) if slot.device_ref else None) or by_device_id.get(slot.device_id))
        for slot in slots
    ]
