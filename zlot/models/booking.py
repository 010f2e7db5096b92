# zlot/models/booking.py
"""
Bookings: created PENDING_PAYMENT, moved to PAID only by the pay step.
CANCELLED / COMPLETED come from admin overrides.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Float
from zlot.database import Base
from zlot.models._ids import new_uuid

BOOKING_STATUSES = {"PENDING_PAYMENT", "PAID", "COMPLETED", "CANCELLED"}
SETTLED_BOOKING_STATUSES = {"PAID", "COMPLETED"}


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    device_id = Column(String(100))
    amount = Column(Float, default=0, nullable=False)
    status = Column(String(30), default="PENDING_PAYMENT", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Booking {self.id} user={self.user_id} status={self.status}>"
