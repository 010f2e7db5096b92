"""
Initialize database — creates all tables and seeds the default gate.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--slot-name "Bay A1"] [--price 50]
"""

import sys
import os
import argparse
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from zlot.database import create_tables, engine, SessionLocal
from zlot.config import settings
from zlot.models.device import Device
from zlot.models.parking_slot import ParkingSlot
from sqlalchemy import inspect, text


def seed_default_gate(slot_name: str, price: float):
    """Ensure DEFAULT_DEVICE_ID has a device row and at least one active slot."""
    db = SessionLocal()
    try:
        device = db.query(Device).filter(Device.device_id == settings.DEFAULT_DEVICE_ID).first()
        if not device:
            device = Device(device_id=settings.DEFAULT_DEVICE_ID, status="OFFLINE")
            db.add(device)
            db.flush()
            print(f"✅ Device {settings.DEFAULT_DEVICE_ID} created")
        else:
            print(f"✓ Device {settings.DEFAULT_DEVICE_ID} already exists")

        has_slot = db.query(ParkingSlot).filter(ParkingSlot.device_id == device.device_id).first()
        if not has_slot:
            db.add(ParkingSlot(device_id=device.device_id, device_ref=device.id,
                               slot_name=slot_name, price=price, is_active=True))
            print(f"✅ Slot '{slot_name}' (price {price}) created on {device.device_id}")
        db.commit()
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Create tables and seed the default gate")
    parser.add_argument("--slot-name", default="Slot A1")
    parser.add_argument("--price", type=float, default=50.0)
    args = parser.parse_args()

    print("🗄️  ZLOT DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {engine.url.render_as_string(hide_password=True)}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  docker-compose up -d db")
        print("  # or: sudo systemctl start postgresql")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    print("\n🚧 Seeding default gate...")
    seed_default_gate(args.slot_name, args.price)

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn zlot.main:app --host 0.0.0.0 --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
