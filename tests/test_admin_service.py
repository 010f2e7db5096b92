"""Unit tests for the admin console service."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from zlot.errors import BadRequestError, NotFoundError
from zlot.models.booking import Booking
from zlot.models.command import Command
from zlot.models.device import Device
from zlot.models.parking_session import ParkingSession
from zlot.models.parking_slot import ParkingSlot
from zlot.models.payment import Payment
from zlot.models.profile import Profile
from zlot.services import admin_service
from conftest import USER_ID


class TestOverview:
    def test_counts_and_revenue(self, db, gate):
        _, slot = gate
        now = datetime.utcnow()
        db.add(ParkingSlot(device_id="GATE_001", slot_name="Slot A2", price=20, is_active=False))
        db.add(ParkingSession(user_id=USER_ID, slot_id=slot.id, device_id="GATE_001", status="ACTIVE",
                              entry_expiry=now + timedelta(seconds=30)))
        db.add(Payment(user_id=USER_ID, amount=50, status="SUCCESS", created_at=now))
        db.add(Payment(user_id=USER_ID, amount=99, status="FAILED", created_at=now))
        db.add(Payment(user_id=USER_ID, amount=70, status="PAID", created_at=now - timedelta(days=400)))
        db.add(Device(device_id="GATE_002", status="ONLINE"))
        db.commit()

        metrics = admin_service.overview(db, now=now)

        assert metrics["total_slots"] == 2
        assert metrics["active_slots"] == 1
        assert metrics["active_sessions"] == 1
        assert metrics["today_revenue"] == 50.0
        assert metrics["month_revenue"] == 50.0
        assert metrics["devices_online"] == 1
        assert metrics["devices_offline"] == 1


class TestListSlots:
    def test_occupied_slot_shows_user(self, db, gate):
        _, slot = gate
        db.add(Profile(id=USER_ID, full_name="Dana Driver"))
        session = ParkingSession(user_id=USER_ID, slot_id=slot.id, device_id="GATE_001", status="ACTIVE",
                                 entry_expiry=datetime.utcnow() + timedelta(seconds=30))
        db.add(session)
        db.commit()

        row = admin_service.list_slots(db)[0]
        assert row["live_status"] == "OCCUPIED"
        assert row["active_session_id"] == session.id
        assert row["active_user_name"] == "Dana Driver"
        assert row["device_online"] is False

    def test_inactive_and_available(self, db, gate):
        _, slot = gate
        assert admin_service.list_slots(db)[0]["live_status"] == "AVAILABLE"
        slot.is_active = False
        db.commit()
        assert admin_service.list_slots(db)[0]["live_status"] == "INACTIVE"


class TestSlotEdits:
    def test_create_slot_links_device(self, db, gate):
        device, _ = gate
        slot = admin_service.create_slot(db, " Slot B1 ", "GATE_001", "25.5")
        assert slot.slot_name == "Slot B1"
        assert slot.device_ref == device.id
        assert slot.price == 25.5
        assert slot.is_active is True

    @pytest.mark.parametrize("price", [-1, "abc", None, float("nan")])
    def test_create_slot_bad_price(self, db, gate, price):
        with pytest.raises(BadRequestError):
            admin_service.create_slot(db, "Slot B1", "GATE_001", price)

    def test_create_slot_unknown_device(self, db, gate):
        with pytest.raises(BadRequestError):
            admin_service.create_slot(db, "Slot B1", "GATE_404", 10)

    def test_update_slot_partial(self, db, gate):
        _, slot = gate
        updated = admin_service.update_slot(db, slot.id, {"price": 75, "is_active": False})
        assert updated.price == 75.0
        assert updated.is_active is False
        assert updated.slot_name == "Slot A1"

    def test_update_slot_nothing_to_change(self, db, gate):
        _, slot = gate
        with pytest.raises(BadRequestError):
            admin_service.update_slot(db, slot.id, {"slot_name": "   "})

    def test_update_slot_empty_device(self, db, gate):
        _, slot = gate
        with pytest.raises(BadRequestError):
            admin_service.update_slot(db, slot.id, {"device_id": ""})

    def test_update_missing_slot(self, db, gate):
        with pytest.raises(NotFoundError):
            admin_service.update_slot(db, "missing", {"price": 10})


class TestDevices:
    def test_pending_and_latest_command(self, db, gate):
        device, _ = gate
        base = datetime.utcnow()
        db.add(Command(device_id="GATE_001", command="OPEN", executed=True, created_at=base - timedelta(seconds=5)))
        latest = Command(device_ref=device.id, command="CLOSE", executed=False, created_at=base)
        db.add(latest)
        db.commit()

        row = admin_service.list_devices(db)[0]
        assert row["pending_command_count"] == 1
        assert row["latest_command"].id == latest.id
        assert row["online"] is False

    def test_queue_device_command(self, db, gate):
        assert admin_service.queue_device_command(db, " GATE_001 ", "OPEN") == "GATE_001"
        assert db.query(Command).one().command == "OPEN"

    def test_queue_requires_device(self, db, gate):
        with pytest.raises(BadRequestError):
            admin_service.queue_device_command(db, "  ", "OPEN")


class TestBookings:
    def test_list_bookings_enriched(self, db, gate):
        db.add(Booking(user_id=USER_ID, device_id="GATE_001", amount=50, status="PENDING_PAYMENT"))
        db.commit()

        row = admin_service.list_bookings(db)[0]
        assert row["user_name"] == "Unknown user"
        assert row["slot_name"] == "Slot A1"
        assert row["payment_status"] == "PENDING"

    def test_update_booking_status(self, db, gate):
        booking = Booking(user_id=USER_ID, device_id="GATE_001", amount=50, status="PENDING_PAYMENT")
        db.add(booking)
        db.commit()

        assert admin_service.update_booking_status(db, booking.id, "cancelled").status == "CANCELLED"

    def test_update_booking_status_rejects_unknown(self, db, gate):
        with pytest.raises(BadRequestError):
            admin_service.update_booking_status(db, "any", "REFUNDED")
        with pytest.raises(NotFoundError):
            admin_service.update_booking_status(db, "missing", "PAID")


class TestSessions:
    def test_remaining_seconds(self, db, gate):
        now = datetime.utcnow()
        db.add(ParkingSession(user_id=USER_ID, device_id="GATE_001", status="ACTIVE",
                              entry_expiry=now + timedelta(seconds=20)))
        db.add(ParkingSession(user_id=USER_ID, device_id="GATE_001", status="COMPLETED",
                              entry_expiry=now + timedelta(seconds=20), created_at=now - timedelta(minutes=1)))
        db.commit()

        rows = admin_service.list_sessions(db, now=now)
        assert [r["remaining_seconds"] for r in rows] == [20, 0]

    def test_force_close_completes_and_sends_close(self, db, gate):
        session = ParkingSession(user_id=USER_ID, device_id="GATE_001", status="ACTIVE",
                                 entry_expiry=datetime.utcnow() + timedelta(seconds=30))
        db.add(session)
        db.commit()

        closed = admin_service.force_close_session(db, session.id)
        assert closed.status == "COMPLETED"
        assert db.query(Command).one().command == "CLOSE"

    def test_force_close_missing(self, db, gate):
        with pytest.raises(NotFoundError):
            admin_service.force_close_session(db, "missing")
