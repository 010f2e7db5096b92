# tests/conftest.py
"""Shared fixtures: in-memory SQLite database, seeded gate, fake identity provider."""

import sys
import os
import base64
import json
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


def make_jwt(payload: dict) -> str:
    def seg(data):
        return base64.urlsafe_b64encode(json.dumps(data).encode()).decode().rstrip("=")
    return f"{seg({'alg': 'HS256', 'typ': 'JWT'})}.{seg(payload)}.signature"


# Must be set before zlot.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SERVICE_ROLE_KEY"] = make_jwt({"role": "service_role"})
os.environ["DEFAULT_DEVICE_ID"] = "GATE_001"
os.environ["SESSION_DURATION_MS"] = "30000"

import pytest
from datetime import datetime, timedelta
from zlot.database import Base, SessionLocal, engine, create_tables
from zlot.models.device import Device
from zlot.models.parking_slot import ParkingSlot

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"
ADMIN_ID = "99999999-9999-9999-9999-999999999999"


@pytest.fixture
def db():
    create_tables(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gate(db):
    """Default device with one active slot (price 50)."""
    device = Device(device_id="GATE_001", status="OFFLINE")
    db.add(device)
    db.flush()
    slot = ParkingSlot(device_id="GATE_001", device_ref=device.id, slot_name="Slot A1",
                       price=50.0, is_active=True, created_at=datetime.utcnow() - timedelta(days=1))
    db.add(slot)
    db.commit()
    return device, slot


class FakeIdentityProvider:
    """token -> user dict, the shape the identity provider returns."""

    def __init__(self, users: dict):
        self.users = users

    async def get_user(self, token):
        return self.users.get(token)


@pytest.fixture
def identity():
    return FakeIdentityProvider({
        "user-token": {"id": USER_ID, "email": "driver@example.com", "user_metadata": {}, "app_metadata": {}},
        "other-token": {"id": OTHER_USER_ID, "email": "other@example.com"},
        "admin-token": {"id": ADMIN_ID, "email": "admin@example.com", "app_metadata": {"role": "admin"}},
    })


@pytest.fixture
def client(db, identity):
    from fastapi.testclient import TestClient
    from zlot.database import get_db
    from zlot.main import app
    from zlot.services.identity_service import get_identity_provider

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


def auth(token: str = "user-token") -> dict:
    return {"Authorization": f"Bearer {token}"}
