# zlot/models/scheduled_close.py
"""
Persisted delayed gate closes. Written by pay / session start / gate open,
fired once by the close sweeper when due_at passes. Survives restarts.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from zlot.database import Base
from zlot.models._ids import new_uuid


class ScheduledClose(Base):
    __tablename__ = "scheduled_closes"

    id = Column(String(36), primary_key=True, default=new_uuid)
    device_id = Column(String(100), nullable=False)
    session_id = Column(String(36), ForeignKey("parking_sessions.id"))  # null for manual gate opens
    due_at = Column(DateTime, nullable=False, index=True)
    fired_at = Column(DateTime, index=True)
    error = Column(Text)                                                # set when firing failed
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ScheduledClose {self.id} device={self.device_id} due={self.due_at} fired={self.fired_at}>"
