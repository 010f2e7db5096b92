# zlot/routers/gate.py
"""
Manual gate control. Bypasses bookings and sessions.
open also arms the timed CLOSE, without completing any session.
No auth: relies on network-level trust of the admin UI / kiosk.
"""

from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from zlot.config import settings
from zlot.database import get_db
from zlot.schemas.device import GateRequest
from zlot.services.command_service import enqueue_command, schedule_close
from zlot.services.store import commit_or_rollback
from zlot.utils.credentials import require_service_role

router = APIRouter(prefix="/gate", dependencies=[Depends(require_service_role)])


def _device_id(body: GateRequest) -> str:
    return (body.device_id or "").strip() or settings.DEFAULT_DEVICE_ID


@router.post("/open", summary="Queue OPEN (auto-CLOSE after the session duration)")
def open_gate(body: GateRequest = GateRequest(), db: Session = Depends(get_db)):
    device_id = _device_id(body)
    try:
        enqueue_command(db, "OPEN", device_id)
        schedule_close(db, device_id, due_at=datetime.utcnow() + settings.SESSION_DURATION)
        commit_or_rollback(db)
    except Exception:
        db.rollback()
        raise
    return {"message": "Gate open command sent", "device_id": device_id}


@router.post("/close", summary="Queue CLOSE")
def close_gate(body: GateRequest = GateRequest(), db: Session = Depends(get_db)):
    device_id = _device_id(body)
    enqueue_command(db, "CLOSE", device_id)
    commit_or_rollback(db)
    return {"message": "Gate close command sent", "device_id": device_id}
