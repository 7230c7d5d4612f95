"""Behavioural sweep tasks."""

import logging

from followup.celery_app import app
from followup.database import SessionLocal

logger = logging.getLogger(__name__)


@app.task
def check_inactivity() -> dict:
    """Log inactivity for users idle past the configured threshold."""
    from followup.services.sweeps import SweepService

    db = SessionLocal()
    try:
        result = SweepService(db).detect_inactivity()
        logger.info(f"Inactivity check: {result}")
        return result

    finally:
        db.close()
