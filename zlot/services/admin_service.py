# zlot/services/admin_service.py
"""
Admin console: overview metrics, enriched slot / device / booking / session
lists, slot and booking edits, force-closing sessions.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from zlot.errors import BadRequestError, NotFoundError
from zlot.models.booking import Booking, BOOKING_STATUSES
from zlot.models.command import Command
from zlot.models.device import Device
from zlot.models.parking_session import ParkingSession, ACTIVE_SESSION_STATUSES
from zlot.models.parking_slot import ParkingSlot
from zlot.models.payment import Payment, SUCCESS_PAYMENT_STATUSES
from zlot.models.profile import Profile
from zlot.services.command_service import enqueue_command
from zlot.services.device_service import is_device_online
from zlot.services.store import insert_row, commit_or_rollback
from zlot.utils.logger import get_logger

logger = get_logger(__name__)

RECENT_COMMANDS_LIMIT = 500
RECENT_BOOKINGS_LIMIT = 250
RECENT_SESSIONS_LIMIT = 300


def normalize_status(value) -> str:
    return value.strip().upper() if isinstance(value, str) else ""


def safe_string(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _user_labels(db: Session) -> dict:
    return {p.id: p for p in db.query(Profile).all()}


def user_label(profiles: dict, user_id: str) -> str:
    profile = profiles.get(user_id)
    if profile is None:
        return "Unknown user"
    return profile.full_name or profile.email or "Unknown user"


def _local_period_start(now: datetime, month: bool = False) -> datetime:
    """Start of the local day (or month) as naive UTC. Payments are stored in UTC."""
    offset = datetime.now().astimezone().utcoffset()
    local = (now + offset).replace(hour=0, minute=0, second=0, microsecond=0)
    if month:
        local = local.replace(day=1)
    return local - offset


def overview(db: Session, now: datetime = None) -> dict:
    now = now or datetime.utcnow()
    today_start = _local_period_start(now)
    month_start = _local_period_start(now, month=True)

    total_slots = db.query(func.count(ParkingSlot.id)).scalar() or 0
    active_slots = db.query(func.count(ParkingSlot.id)).filter(ParkingSlot.is_active == True).scalar() or 0  # noqa: E712
    active_sessions = (
        db.query(func.count(ParkingSession.id))
        .filter(ParkingSession.status.in_(ACTIVE_SESSION_STATUSES))
        .scalar() or 0
    )
    devices = db.query(Device).all()
    online = sum(1 for d in devices if is_device_online(d, now))

    today_revenue = month_revenue = 0.0
    for payment in db.query(Payment).filter(Payment.created_at >= month_start).all():
        if normalize_status(payment.status) not in SUCCESS_PAYMENT_STATUSES:
            continue
        amount = float(payment.amount or 0)
        month_revenue += amount
        if payment.created_at and payment.created_at >= today_start:
            today_revenue += amount

    return {
        "total_slots": total_slots,
        "active_slots": active_slots,
        "active_sessions": active_sessions,
        "today_revenue": today_revenue,
        "month_revenue": month_revenue,
        "devices_online": online,
        "devices_offline": max(0, len(devices) - online),
    }


def list_slots(db: Session, now: datetime = None) -> list:
    """Every slot with live status, device liveness and the occupying user."""
    now = now or datetime.utcnow()
    slots = db.query(ParkingSlot).order_by(ParkingSlot.created_at.desc()).all()
    devices = db.query(Device).all()
    by_device_id = {d.device_id: d for d in devices}
    by_ref = {d.id: d for d in devices}
    active_by_slot = {
        s.slot_id: s
        for s in db.query(ParkingSession).filter(ParkingSession.status.in_(ACTIVE_SESSION_STATUSES)).all()
    }
    profiles = _user_labels(db)

    rows = []
    for slot in slots:
        device = (by_ref.get(slot.device_ref) if slot.device_ref else None) or by_device_id.get(slot.device_id)
        session = active_by_slot.get(slot.id)
        live_status = "INACTIVE"
        if slot.is_active:
            live_status = "OCCUPIED" if session else "AVAILABLE"
        rows.append({
            "slot": slot,
            "live_status": live_status,
            "device_status": device.status if device else None,
            "device_last_seen": device.last_seen if device else None,
            "device_online": is_device_online(device, now) if device else False,
            "active_session_id": session.id if session else None,
            "active_user_id": session.user_id if session else None,
            "active_user_name": user_label(profiles, session.user_id) if session else None,
        })
    return rows


def _require_device(db: Session, device_id: str, message: str) -> Device:
    device = db.query(Device).filter(Device.device_id == device_id).first()
    if device is None:
        raise BadRequestError(message)
    return device


def _valid_price(value) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        price = float("nan")
    if price != price or price in (float("inf"), float("-inf")) or price < 0:
        raise BadRequestError("price must be a non-negative number.")
    return price


def create_slot(db: Session, slot_name, device_id, price, is_active: bool = True) -> ParkingSlot:
    slot_name, device_id = safe_string(slot_name), safe_string(device_id)
    if not slot_name:
        raise BadRequestError("slot_name is required.")
    if not device_id:
        raise BadRequestError("device_id is required.")
    price = _valid_price(price)
    device = _require_device(db, device_id, f"Device {device_id} not found. Create device row first.")

    slot = insert_row(db, ParkingSlot(
        slot_name=slot_name, device_id=device_id, device_ref=device.id,
        price=price, is_active=bool(is_active),
    ), "Parking slot")
    commit_or_rollback(db)
    logger.info(f"[ADMIN] Slot {slot_name} created on {device_id}")
    return slot


def update_slot(db: Session, slot_id: str, fields: dict) -> ParkingSlot:
    """Partial update. `fields` holds only what the client actually sent."""
    payload = {}
    slot_name = safe_string(fields.get("slot_name"))
    if slot_name:
        payload["slot_name"] = slot_name
    if fields.get("price") is not None:
        payload["price"] = _valid_price(fields["price"])
    if fields.get("is_active") is not None:
        payload["is_active"] = bool(fields["is_active"])
    if "device_id" in fields:
        device_id = safe_string(fields["device_id"])
        if not device_id:
            raise BadRequestError("device_id cannot be empty.")
        device = _require_device(db, device_id, f"Device {device_id} not found.")
        payload["device_id"] = device_id
        payload["device_ref"] = device.id

    if not payload:
        raise BadRequestError("No valid update fields provided.")

    slot = db.query(ParkingSlot).filter(ParkingSlot.id == slot_id).first()
    if slot is None:
        raise NotFoundError("Slot not found.")
    for key, value in payload.items():
        setattr(slot, key, value)
    commit_or_rollback(db)
    logger.info(f"[ADMIN] Slot {slot_id} updated: {sorted(payload)}")
    return slot


def list_devices(db: Session, now: datetime = None) -> list:
    now = now or datetime.utcnow()
    devices = db.query(Device).order_by(Device.created_at.desc()).all()
    commands = db.query(Command).order_by(Command.created_at.desc()).limit(RECENT_COMMANDS_LIMIT).all()

    rows = []
    for device in devices:
        related = [c for c in commands if c.device_id == device.device_id or c.device_ref == device.id]
        rows.append({
            "device": device,
            "online": is_device_online(device, now),
            "pending_command_count": sum(1 for c in related if c.executed is False),
            "latest_command": related[0] if related else None,
            "error_log_count": sum(1 for c in related if "ERROR" in normalize_status(c.command)),
            "tamper_alert_count": sum(1 for c in related if "TAMPER" in normalize_status(c.command)),
        })
    return rows


def queue_device_command(db: Session, device_id: str, command_type: str) -> str:
    device_id = safe_string(device_id)
    if not device_id:
        raise BadRequestError("deviceId is required.")
    enqueue_command(db, command_type, device_id)
    commit_or_rollback(db)
    return device_id


def _payment_status(booking_status: str) -> str:
    status = normalize_status(booking_status)
    if status in ("PAID", "COMPLETED"):
        return "PAID"
    if status == "PENDING_PAYMENT":
        return "PENDING"
    if status == "CANCELLED":
        return "CANCELLED"
    return "UNKNOWN"


def list_bookings(db: Session) -> list:
    bookings = db.query(Booking).order_by(Booking.created_at.desc()).limit(RECENT_BOOKINGS_LIMIT).all()
    profiles = _user_labels(db)
    first_slot_by_device = {}
    for slot in db.query(ParkingSlot).order_by(ParkingSlot.created_at.asc()).all():
        if slot.device_id and slot.device_id not in first_slot_by_device:
            first_slot_by_device[slot.device_id] = slot

    return [
        {
            "booking": b,
            "user_name": user_label(profiles, b.user_id),
            "slot_name": first_slot_by_device[b.device_id].slot_name if b.device_id in first_slot_by_device else None,
            "payment_status": _payment_status(b.status),
        }
        for b in bookings
    ]


def update_booking_status(db: Session, booking_id: str, status) -> Booking:
    next_status = normalize_status(status)
    if not next_status:
        raise BadRequestError("status is required.")
    if next_status not in BOOKING_STATUSES:
        raise BadRequestError("Unsupported booking status.")

    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if booking is None:
        raise NotFoundError("Booking not found.")
    booking.status = next_status
    commit_or_rollback(db)
    logger.info(f"[ADMIN] Booking {booking_id} → {next_status}")
    return booking


def list_sessions(db: Session, now: datetime = None) -> list:
    now = now or datetime.utcnow()
    sessions = (
        db.query(ParkingSession).order_by(ParkingSession.created_at.desc())
        .limit(RECENT_SESSIONS_LIMIT).all()
    )
    profiles = _user_labels(db)
    slots = {s.id: s for s in db.query(ParkingSlot).all()}

    rows = []
    for session in sessions:
        slot = slots.get(session.slot_id)
        remaining = 0
        if normalize_status(session.status) in ACTIVE_SESSION_STATUSES and isinstance(session.entry_expiry, datetime):
            remaining = max(0, int((session.entry_expiry - now).total_seconds()))
        rows.append({
            "session": session,
            "user_name": user_label(profiles, session.user_id),
            "slot_name": slot.slot_name if slot else None,
            "remaining_seconds": remaining,
        })
    return rows


def force_close_session(db: Session, session_id: str) -> ParkingSession:
    """COMPLETED + CLOSE now. A still-pending scheduled close will fire a redundant CLOSE later."""
    session = db.query(ParkingSession).filter(ParkingSession.id == session_id).first()
    if session is None:
        raise NotFoundError("Session not found.")

    try:
        session.status = "COMPLETED"
        if session.device_id:
            enqueue_command(db, "CLOSE", session.device_id)
        commit_or_rollback(db)
    except Exception:
        db.rollback()
        raise
    logger.info(f"[ADMIN] Session {session_id} force-closed")
    return session
