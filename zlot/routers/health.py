# zlot/routers/health.py
"""
Liveness + health check.
Returns status of backend, database and the privileged credential.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from zlot.database import get_db
from zlot.errors import InternalError
from zlot.utils.credentials import assert_service_role_key, service_key_role
from datetime import datetime

router = APIRouter()


@router.get("/", summary="Liveness")
def root():
    return {"message": "ZLOT backend is running."}


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Service credential status (role claim, never the key itself)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "service_key": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    try:
        assert_service_role_key()
        result["service_key"] = service_key_role() or "ok"
    except InternalError as e:
        result["service_key"] = f"error: {e.message}"
        result["status"] = "degraded"

    return result
