# zlot/utils/logger.py
"""
Centralised logging for the backend.
Console + rotating file (logs/zlot.log). Gate commands, device heartbeats and
close-sweeper failures are the lines operators usually grep for.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from zlot.config import settings

LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
LOG_FILE = "zlot.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Third-party loggers that drown out gate activity at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")

_configured = False


def _build_handlers(level: str) -> list:
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(fmt)

    os.makedirs(LOG_DIR, exist_ok=True)
    rotating = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, LOG_FILE),
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    rotating.setLevel(level)
    rotating.setFormatter(fmt)
    return [console, rotating]


def configure_logging(level: str = None):
    """Attach handlers to the root logger once. Later calls only adjust the level."""
    global _configured
    level = (level or settings.LOG_LEVEL).upper()
    root = logging.getLogger()
    root.setLevel(level)
    if _configured:
        return
    _configured = True

    for handler in _build_handlers(level):
        root.addHandler(handler)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    configure_logging()
    return logging.getLogger(name)
