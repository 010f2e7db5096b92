# zlot/models/parking_session.py
"""
One user's time-boxed occupancy of a slot, bounded by entry_expiry.
At most one ACTIVE/IN_PROGRESS session per user (enforced by session_guard).
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from zlot.database import Base
from zlot.models._ids import new_uuid

ACTIVE_SESSION_STATUSES = ("ACTIVE", "IN_PROGRESS")


class ParkingSession(Base):
    __tablename__ = "parking_sessions"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    slot_id = Column(String(36), ForeignKey("parking_slots.id"))
    device_id = Column(String(100))
    device_ref = Column(String(36), ForeignKey("devices.id"))
    status = Column(String(30), default="ACTIVE", nullable=False, index=True)  # ACTIVE | IN_PROGRESS | COMPLETED
    entry_expiry = Column(DateTime, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<ParkingSession {self.id} user={self.user_id} status={self.status}>"
