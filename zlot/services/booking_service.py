# zlot/services/booking_service.py
"""
Booking / Payment Orchestrator.

  (no booking) --create--> PENDING_PAYMENT --pay--> PAID + session ACTIVE
  --close sweeper / force-close--> session COMPLETED (booking untouched)

pay runs {insert session → insert payment → booking PAID → OPEN → scheduled close}
in one transaction; any failure rolls the whole sequence back.
Payment capture is a stub: order/payment refs are synthesized.
"""

import time
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from zlot.config import settings
from zlot.errors import ConflictError, InvalidStateError, NotFoundError, BadRequestError
from zlot.models.booking import Booking, SETTLED_BOOKING_STATUSES
from zlot.models.parking_session import ParkingSession
from zlot.models.parking_slot import ParkingSlot
from zlot.models.payment import Payment
from zlot.services.command_service import enqueue_command, schedule_close
from zlot.services.session_guard import ensure_no_conflicting_session
from zlot.services.slot_service import resolve_active_slot
from zlot.services.store import insert_row, commit_or_rollback
from zlot.utils.logger import get_logger

logger = get_logger(__name__)

HISTORY_LIMIT = 20


def create_booking(db: Session, user_id: str, slot_id: Optional[str] = None):
    """Returns (booking, slot)."""
    ensure_no_conflicting_session(db, user_id)

    slot = resolve_active_slot(db, slot_id=slot_id, device_id=settings.DEFAULT_DEVICE_ID)
    if slot is None:
        raise InvalidStateError("No active parking slot is available. Add an active row in parking_slots.")

    booking = insert_row(db, Booking(
        user_id=user_id,
        device_id=slot.device_id or settings.DEFAULT_DEVICE_ID,
        amount=float(slot.price or 0),
        status="PENDING_PAYMENT",
    ), "Booking")
    commit_or_rollback(db)
    logger.info(f"[BOOKING] {booking.id} created for user {user_id} on {slot.slot_name} ({booking.amount})")
    return booking, slot


def open_session(db: Session, user_id: str, slot: ParkingSlot, fallback_device_id: str = None,
                 now: datetime = None) -> ParkingSession:
    """Insert an ACTIVE session expiring SESSION_DURATION from now. No commit."""
    now = now or datetime.utcnow()
    device_id = slot.device_id or fallback_device_id or settings.DEFAULT_DEVICE_ID
    session = insert_row(db, ParkingSession(
        user_id=user_id,
        slot_id=slot.id,
        device_id=device_id,
        device_ref=slot.device_ref,
        status="ACTIVE",
        entry_expiry=now + settings.SESSION_DURATION,
        created_at=now,
    ), "Parking session")
    return session


def arm_gate(db: Session, session: ParkingSession):
    enqueue_command(db, "OPEN", session.device_id)
    schedule_close(db, session.device_id, due_at=session.entry_expiry, session_id=session.id)


def pay_booking(db: Session, user_id: str, booking_id: Optional[str], slot_id: Optional[str] = None):
    """Returns (session, payment, slot)."""
    booking_id = (booking_id or "").strip()
    if not booking_id:
        raise BadRequestError("booking_id is required")

    booking = db.query(Booking).filter(Booking.id == booking_id, Booking.user_id == user_id).first()
    if booking is None:
        raise NotFoundError("Booking not found")

    status = (booking.status or "").upper()
    if status in SETTLED_BOOKING_STATUSES:
        raise ConflictError("Booking is already paid.")
    if status == "CANCELLED":
        raise InvalidStateError("Cancelled booking cannot be paid.")

    # A retried request may have started a session since create
    ensure_no_conflicting_session(db, user_id)

    slot = resolve_active_slot(db, slot_id=slot_id, device_id=booking.device_id or settings.DEFAULT_DEVICE_ID)
    if slot is None:
        raise InvalidStateError("Unable to map booking to an active slot. Pass slot_id or configure parking_slots.")

    try:
        session = open_session(db, booking.user_id, slot, fallback_device_id=booking.device_id)
        payment = insert_row(db, Payment(
            user_id=booking.user_id,
            session_id=session.id,
            amount=float(booking.amount or slot.price or 0),
            status="SUCCESS",
            order_id=f"order_{booking_id[:8]}",
            payment_id=f"pay_{int(time.time() * 1000)}",
        ), "Payment")
        booking.status = "PAID"
        arm_gate(db, session)
        commit_or_rollback(db)
    except Exception:
        db.rollback()
        raise

    logger.info(f"[BOOKING] {booking_id} paid: session {session.id} on {session.device_id} until {session.entry_expiry.isoformat()}")
    return session, payment, slot


def get_history(db: Session, user_id: str) -> dict:
    """Newest bookings / sessions / payments for the user plus the slots those sessions used."""
    bookings = (
        db.query(Booking).filter(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc()).limit(HISTORY_LIMIT).all()
    )
    sessions = (
        db.query(ParkingSession).filter(ParkingSession.user_id == user_id)
        .order_by(ParkingSession.created_at.desc()).limit(HISTORY_LIMIT).all()
    )
    payments = (
        db.query(Payment).filter(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc()).limit(HISTORY_LIMIT).all()
    )
    slot_ids = {s.slot_id for s in sessions if s.slot_id}
    slots = db.query(ParkingSlot).filter(ParkingSlot.id.in_(slot_ids)).all() if slot_ids else []
    return {"bookings": bookings, "sessions": sessions, "payments": payments, "slots": slots}
