# zlot/models/device.py
"""
Gate controllers. Provisioned out-of-band; this backend only touches
status/last_seen (every poll and every ack is a heartbeat).
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime
from zlot.database import Base
from zlot.models._ids import new_uuid

# Statuses that count as online regardless of last_seen
ONLINE_DEVICE_STATUSES = {"ONLINE", "ACTIVE", "CONNECTED"}


class Device(Base):
    __tablename__ = "devices"

    id = Column(String(36), primary_key=True, default=new_uuid)      # opaque ref
    device_id = Column(String(100), unique=True, nullable=False, index=True)  # human key, e.g. GATE_001
    status = Column(String(30), default="OFFLINE")
    last_seen = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Device {self.device_id} status={self.status} last_seen={self.last_seen}>"
