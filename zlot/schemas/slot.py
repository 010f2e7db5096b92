# zlot/schemas/slot.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class SlotOut(BaseModel):
    id: str
    device_id: Optional[str]
    device_ref: Optional[str]
    slot_name: str
    price: float
    is_active: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class SlotWithDeviceOut(SlotOut):
    device_status: Optional[str] = None
    device_last_seen: Optional[datetime] = None


class AdminSlotOut(SlotWithDeviceOut):
    live_status: str                    # INACTIVE | OCCUPIED | AVAILABLE
    device_online: bool = False
    active_session_id: Optional[str] = None
    active_user_id: Optional[str] = None
    active_user_name: Optional[str] = None


class SlotCreate(BaseModel):
    slot_name: Optional[str] = None
    device_id: Optional[str] = None
    price: Optional[float] = None
    is_active: bool = True


class SlotUpdate(BaseModel):
    slot_name: Optional[str] = None
    device_id: Optional[str] = None
    price: Optional[float] = None
    is_active: Optional[bool] = None
