# zlot/routers/booking.py
"""Slots listing, booking history, booking create + pay."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from zlot.database import get_db
from zlot.schemas.booking import BookingCreate, BookingOut, BookingPay
from zlot.schemas.parking_session import ParkingSessionOut
from zlot.schemas.payment import PaymentOut
from zlot.schemas.slot import SlotOut, SlotWithDeviceOut
from zlot.services import booking_service
from zlot.services.identity_service import Principal, get_current_user, ensure_same_user
from zlot.services.slot_service import list_active_slots
from zlot.utils.credentials import require_service_role

router = APIRouter(prefix="/booking", dependencies=[Depends(require_service_role)])


@router.get("/slots", summary="Active bookable slots with device status")
def get_slots(db: Session = Depends(get_db)):
    slots = [
        SlotWithDeviceOut(
            **SlotOut.model_validate(slot).model_dump(),
            device_status=device.status if device else None,
            device_last_seen=device.last_seen if device else None,
        )
        for slot, device in list_active_slots(db)
    ]
    return {"slots": slots}


@router.get("/history", summary="Caller's recent bookings, sessions and payments")
def get_history(user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    history = booking_service.get_history(db, user.id)
    return {
        "bookings": [BookingOut.model_validate(b) for b in history["bookings"]],
        "sessions": [ParkingSessionOut.model_validate(s) for s in history["sessions"]],
        "payments": [PaymentOut.model_validate(p) for p in history["payments"]],
        "slots": [SlotOut.model_validate(s) for s in history["slots"]],
    }


@router.post("/create", status_code=status.HTTP_201_CREATED, summary="Create a PENDING_PAYMENT booking")
def create_booking(
    body: BookingCreate = BookingCreate(),
    user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_same_user(user, body.user_id)
    booking, slot = booking_service.create_booking(db, user.id, (body.slot_id or "").strip() or None)
    return {"booking": BookingOut.model_validate(booking), "slot": SlotOut.model_validate(slot)}


@router.post("/pay", summary="Confirm payment, start the session and open the gate")
def pay_booking(
    body: BookingPay,
    user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session, payment, slot = booking_service.pay_booking(
        db, user.id, body.booking_id, (body.slot_id or "").strip() or None
    )
    return {
        "message": "Payment confirmed, gate opening",
        "session": ParkingSessionOut.model_validate(session),
        "payment": PaymentOut.model_validate(payment),
        "slot": SlotOut.model_validate(slot),
    }
