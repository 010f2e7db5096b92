# zlot/schemas/device.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class DevicePoll(BaseModel):
    device_id: Optional[str] = None


class DeviceAck(BaseModel):
    command_id: Optional[str] = None


class GateRequest(BaseModel):
    device_id: Optional[str] = None    # defaults to DEFAULT_DEVICE_ID


class CommandOut(BaseModel):
    id: str
    device_id: Optional[str]
    device_ref: Optional[str]
    command: str
    executed: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class DeviceOut(BaseModel):
    id: str
    device_id: str
    status: Optional[str]
    last_seen: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class AdminDeviceOut(DeviceOut):
    online: bool
    pending_command_count: int = 0
    latest_command: Optional[CommandOut] = None
    error_log_count: int = 0
    tamper_alert_count: int = 0
