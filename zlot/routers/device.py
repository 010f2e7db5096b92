# zlot/routers/device.py
"""
Endpoints called by the gate firmware.
Plain def: the SQLAlchemy calls block, so FastAPI runs these in its threadpool.
POST /device/poll — heartbeat + next unexecuted command ({} when idle)
POST /device/ack  — mark a command executed (also a heartbeat)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from zlot.database import get_db
from zlot.schemas.device import CommandOut, DeviceAck, DevicePoll
from zlot.services import device_service
from zlot.utils.credentials import require_service_role

router = APIRouter(prefix="/device", dependencies=[Depends(require_service_role)])


@router.post("/poll", summary="Device heartbeat + fetch next command")
def poll(body: DevicePoll, db: Session = Depends(get_db)):
    command = device_service.poll(db, body.device_id)
    if command is None:
        return {}
    return CommandOut.model_validate(command)


@router.post("/ack", summary="Acknowledge an executed command")
def ack(body: DeviceAck, db: Session = Depends(get_db)):
    command_id = device_service.ack(db, body.command_id)
    return {"message": "Command acknowledged", "command_id": command_id}
