"""
startup.py — One-time work on application boot

Creates any missing tables and seeds the default supplier scoring weights.
Safe to run on every boot: both steps are no-ops once done.

Called by: main.py (lifespan), skipped when TESTING is set
Depends on: database, models, services/settings_service.py
"""

import logging

from .database import SessionLocal, engine
from .models import Base
from .services.settings_service import seed_default_weights

log = logging.getLogger(__name__)


def run_startup() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_default_weights(db)
    finally:
        db.close()
    log.info("Startup complete")
