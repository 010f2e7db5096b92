# zlot/models/parking_slot.py
"""
Bookable parking spaces, one gate device each.
Inactive slots must never be handed out for a new session.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Float, Boolean, ForeignKey
from zlot.database import Base
from zlot.models._ids import new_uuid


class ParkingSlot(Base):
    __tablename__ = "parking_slots"

    id = Column(String(36), primary_key=True, default=new_uuid)
    device_id = Column(String(100), index=True)                        # string key (legacy)
    device_ref = Column(String(36), ForeignKey("devices.id"))          # opaque ref (optional)
    slot_name = Column(String(200), nullable=False)
    price = Column(Float, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<ParkingSlot {self.slot_name} device={self.device_id} active={self.is_active}>"
