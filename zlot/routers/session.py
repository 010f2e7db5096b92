# zlot/routers/session.py
"""Direct session start (no booking step)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from zlot.database import get_db
from zlot.schemas.parking_session import ParkingSessionOut, SessionStart
from zlot.schemas.slot import SlotOut
from zlot.services.identity_service import Principal, get_current_user, ensure_same_user
from zlot.services.session_service import start_session
from zlot.utils.credentials import require_service_role

router = APIRouter(prefix="/session", dependencies=[Depends(require_service_role)])


@router.post("/start", summary="Start a parking session and open the gate")
def start(
    body: SessionStart = SessionStart(),
    user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_same_user(user, body.user_id)
    session, slot = start_session(db, user.id, (body.slot_id or "").strip() or None)
    return {
        "message": "Session started",
        "session": ParkingSessionOut.model_validate(session),
        "slot": SlotOut.model_validate(slot),
    }
