# zlot/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL. All models are auto-imported here
so create_tables() creates every table in one call.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from zlot.config import settings


def build_engine(url: str):
    """Create an engine; SQLite (tests, local demos) gets working SAVEPOINT support."""
    if not url.startswith("sqlite"):
        return create_engine(
            url,
            pool_pre_ping=True,          # Auto-reconnect if DB connection drops
            pool_size=10,
            max_overflow=20,
            echo=False,                  # Set True to log all SQL queries (debug only)
        )

    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool     # one shared in-memory database
    sqlite_engine = create_engine(url, **kwargs)

    # pysqlite defers BEGIN on its own, which breaks begin_nested()
    @event.listens_for(sqlite_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from zlot.models.device import Device                   # noqa
    from zlot.models.parking_slot import ParkingSlot        # noqa
    from zlot.models.booking import Booking                 # noqa
    from zlot.models.parking_session import ParkingSession  # noqa
    from zlot.models.payment import Payment                 # noqa
    from zlot.models.command import Command                 # noqa
    from zlot.models.scheduled_close import ScheduledClose  # noqa
    from zlot.models.profile import Profile                 # noqa

    Base.metadata.create_all(bind=bind or engine)
