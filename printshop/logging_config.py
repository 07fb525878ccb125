"""
logging_config.py — Loguru setup for the quote engine

Services log through ``logging.getLogger(__name__)``; those records are handed
to Loguru so quote transitions, assignments and weight changes share one
stream with the request middleware.

Business Rules:
- APP_ENV=production: JSON lines on stdout plus a rotating JSON file
  (LOG_FILE, 50 MB per file, kept 7 days)
- Any other APP_ENV: coloured one-line format showing the request id
- Every record carries ``request_id``; outside a request it is "-"
- LOG_LEVEL overrides settings.log_level

Called by: printshop/main.py (lifespan)
Depends on: config.settings, APP_ENV / LOG_LEVEL / LOG_FILE
"""

import logging
import os
import sys

from loguru import logger

from .config import settings

DEFAULT_LOG_FILE = "/var/log/printshop/quote-engine.log"
NO_REQUEST_ID = "-"
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")

DEV_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)


def is_production() -> bool:
    return os.getenv("APP_ENV", "").lower() == "production"


def _add_production_sinks(level: str) -> None:
    logger.add(sys.stdout, level=level, format="{message}", serialize=True)
    logger.add(
        os.getenv("LOG_FILE", DEFAULT_LOG_FILE),
        level=level,
        rotation="50 MB",
        retention="7 days",
        compression="gz",
        serialize=True,
    )


def setup_logging() -> None:
    """Replace Loguru's sinks and route stdlib logging into them."""
    logger.remove()
    level = os.getenv("LOG_LEVEL", settings.log_level).upper()
    production = is_production()

    if production:
        _add_production_sinks(level)
    else:
        logger.add(sys.stdout, level=level, format=DEV_FORMAT, colorize=True)

    logger.configure(extra={"request_id": NO_REQUEST_ID})
    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging configured", level=level, production=production)


class _InterceptHandler(logging.Handler):
    """Hand stdlib records to Loguru, reporting the original call site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
