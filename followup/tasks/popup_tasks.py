"""Popup queue maintenance tasks."""

import logging

from followup.celery_app import app
from followup.database import SessionLocal

logger = logging.getLogger(__name__)


@app.task
def expire_popups() -> dict:
    """Expire queued popups past their TTL for every user."""
    from followup.services.popups import PopupEngine

    db = SessionLocal()
    try:
        expired = PopupEngine(db).expire_popups()
        return {"expired": expired}

    finally:
        db.close()
