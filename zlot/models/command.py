# zlot/models/command.py
"""
Gate commands queued for a device to fetch via /device/poll.
Addressed by string key (legacy rows) or by device_ref; only /device/ack flips executed.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from zlot.database import Base
from zlot.models._ids import new_uuid

GATE_COMMANDS = ("OPEN", "CLOSE")


class Command(Base):
    __tablename__ = "commands"

    id = Column(String(36), primary_key=True, default=new_uuid)
    device_id = Column(String(100), index=True)
    device_ref = Column(String(36), ForeignKey("devices.id"), index=True)
    command = Column(String(30), nullable=False)    # OPEN | CLOSE
    executed = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Command {self.id} {self.command} device={self.device_id or self.device_ref} executed={self.executed}>"
