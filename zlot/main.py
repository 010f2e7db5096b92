# zlot/main.py
"""
FastAPI application entry point.
CORS, request timing, error-to-JSON handlers, all routers, and the
close sweeper started/stopped with the app.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from zlot.routers import admin, booking, device, gate, health, session
from zlot.database import create_tables
from zlot.config import settings
from zlot.errors import ZlotError
from zlot.services.close_scheduler import start_close_sweeper, stop_close_sweeper
from zlot.utils.credentials import assert_service_role_key, service_key_role
from zlot.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="ZLOT Parking API",
    description="Bookings, parking sessions and IoT gate commands.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (allow-list fixed at startup + private-network frontends) ───────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(ZlotError)
async def zlot_error_handler(request: Request, exc: ZlotError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else (first.get("msg") or "Invalid request body")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(SQLAlchemyError)
async def datastore_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Datastore error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc.orig) if getattr(exc, "orig", None) else str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(health.router,  tags=["💚 Health"])
app.include_router(booking.router, tags=["🅿️  Booking"])
app.include_router(session.router, tags=["⏱  Sessions"])
app.include_router(gate.router,    tags=["🚧 Gate"])
app.include_router(device.router,  tags=["📡 Device"])
app.include_router(admin.router,   tags=["🛠  Admin"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 ZLOT Backend starting up...")
    # Refuse to start with a missing / anon credential
    assert_service_role_key()
    logger.info(f"🔑 Service key role: {service_key_role() or 'opaque'}")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"🚧 Default gate device: {settings.DEFAULT_DEVICE_ID} | session {settings.SESSION_DURATION_MS}ms")
    logger.info(f"🌐 Allowed frontend origins: {', '.join(settings.CORS_ORIGINS)}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    app.state.close_sweeper = start_close_sweeper()


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 ZLOT Backend shutting down...")
    await stop_close_sweeper(getattr(app.state, "close_sweeper", None))
