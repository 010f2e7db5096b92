# zlot/schemas/parking_session.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class SessionStart(BaseModel):
    slot_id: Optional[str] = None
    user_id: Optional[str] = None


class ParkingSessionOut(BaseModel):
    id: str
    user_id: str
    slot_id: Optional[str]
    device_id: Optional[str]
    device_ref: Optional[str]
    status: str
    entry_expiry: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class AdminSessionOut(ParkingSessionOut):
    user_name: str
    slot_name: Optional[str] = None
    remaining_seconds: int = 0
