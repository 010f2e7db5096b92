# zlot/schemas/booking.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class BookingCreate(BaseModel):
    slot_id: Optional[str] = None
    user_id: Optional[str] = None      # optional echo; must match the caller


class BookingPay(BaseModel):
    booking_id: Optional[str] = None
    slot_id: Optional[str] = None


class BookingOut(BaseModel):
    id: str
    user_id: str
    device_id: Optional[str]
    amount: float
    status: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class AdminBookingOut(BookingOut):
    user_name: str
    slot_name: Optional[str] = None
    payment_status: str                # PAID | PENDING | CANCELLED | UNKNOWN


class BookingStatusUpdate(BaseModel):
    status: Optional[str] = None
