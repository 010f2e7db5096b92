# zlot/routers/admin.py
"""Admin console endpoints; all require an admin principal."""

from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from zlot.database import get_db
from zlot.schemas.booking import AdminBookingOut, BookingOut, BookingStatusUpdate
from zlot.schemas.device import AdminDeviceOut, CommandOut, DeviceOut
from zlot.schemas.parking_session import AdminSessionOut, ParkingSessionOut
from zlot.schemas.slot import AdminSlotOut, SlotCreate, SlotOut, SlotUpdate
from zlot.services import admin_service
from zlot.services.identity_service import AdminContext, get_admin_user
from zlot.utils.credentials import require_service_role

router = APIRouter(prefix="/admin", dependencies=[Depends(require_service_role)])


@router.get("/me", summary="Validate admin access")
def me(admin: AdminContext = Depends(get_admin_user)):
    profile = admin.profile
    return {
        "user": {"id": admin.user.id, "email": admin.user.email},
        "profile": (
            {"id": profile.id, "full_name": profile.full_name, "email": profile.email}
            if profile else None
        ),
        "admin": True,
    }


@router.get("/overview", summary="Slot, session, revenue and device metrics")
def overview(admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    return {
        "metrics": admin_service.overview(db),
        "generated_at": datetime.utcnow().isoformat(),
        "admin_user_id": admin.user.id,
    }


@router.get("/slots", summary="All slots with live status")
def list_slots(admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    slots = [
        AdminSlotOut(**SlotOut.model_validate(row.pop("slot")).model_dump(), **row)
        for row in admin_service.list_slots(db)
    ]
    return {"slots": slots}


@router.post("/slots", status_code=status.HTTP_201_CREATED, summary="Create a slot")
def create_slot(body: SlotCreate, admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    slot = admin_service.create_slot(db, body.slot_name, body.device_id, body.price, body.is_active)
    return {"slot": SlotOut.model_validate(slot)}


@router.patch("/slots/{slot_id}", summary="Update slot name / price / active flag / device")
def update_slot(slot_id: str, body: SlotUpdate, admin: AdminContext = Depends(get_admin_user),
                db: Session = Depends(get_db)):
    slot = admin_service.update_slot(db, slot_id, body.model_dump(exclude_unset=True))
    return {"slot": SlotOut.model_validate(slot)}


@router.get("/devices", summary="Devices with liveness and command counters")
def list_devices(admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    devices = []
    for row in admin_service.list_devices(db):
        device = row.pop("device")
        latest = row.pop("latest_command")
        devices.append(AdminDeviceOut(
            **DeviceOut.model_validate(device).model_dump(),
            latest_command=CommandOut.model_validate(latest) if latest else None,
            **row,
        ))
    return {"devices": devices}


@router.post("/devices/{device_id}/open", summary="Queue OPEN for a device")
def open_device(device_id: str, admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    device_id = admin_service.queue_device_command(db, device_id, "OPEN")
    return {"message": "OPEN command queued.", "device_id": device_id}


@router.post("/devices/{device_id}/close", summary="Queue CLOSE for a device")
def close_device(device_id: str, admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    device_id = admin_service.queue_device_command(db, device_id, "CLOSE")
    return {"message": "CLOSE command queued.", "device_id": device_id}


@router.get("/bookings", summary="Recent bookings with user and payment status")
def list_bookings(admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    bookings = [
        AdminBookingOut(**BookingOut.model_validate(row.pop("booking")).model_dump(), **row)
        for row in admin_service.list_bookings(db)
    ]
    return {"bookings": bookings}


@router.patch("/bookings/{booking_id}/status", summary="Override booking status")
def update_booking_status(booking_id: str, body: BookingStatusUpdate,
                          admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    booking = admin_service.update_booking_status(db, booking_id, body.status)
    return {"booking": BookingOut.model_validate(booking)}


@router.get("/sessions", summary="Recent sessions with remaining time")
def list_sessions(admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    sessions = [
        AdminSessionOut(**ParkingSessionOut.model_validate(row.pop("session")).model_dump(), **row)
        for row in admin_service.list_sessions(db)
    ]
    return {"sessions": sessions}


@router.post("/sessions/{session_id}/force-close", summary="Complete a session and close its gate")
def force_close(session_id: str, admin: AdminContext = Depends(get_admin_user), db: Session = Depends(get_db)):
    session = admin_service.force_close_session(db, session_id)
    return {"message": "Session force-closed.", "session": ParkingSessionOut.model_validate(session)}
