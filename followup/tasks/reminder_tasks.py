"""Reminder delivery tasks."""

import logging

from followup.celery_app import app
from followup.clock import utcnow
from followup.database import SessionLocal
from followup.models.reminder import ACTIVE_STATUSES, Reminder

logger = logging.getLogger(__name__)

DUE_BATCH_SIZE = 50


def run_async(coro):
    """Run an async coroutine in a sync context."""
    import asyncio

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@app.task
def fire_reminder(reminder_id: int) -> dict:
    """Scheduler callback for one reminder.

    Safe under redelivery: the dispatcher skips reminders that are no longer
    active or not yet due.

    Args:
        reminder_id: ID of the reminder that is due
    """
    from followup.services.dispatcher import ReminderDispatcher

    db = SessionLocal()
    try:
        result = run_async(ReminderDispatcher(db).dispatch(reminder_id))
        logger.info(f"Reminder {reminder_id}: {result.outcome}")
        return result.model_dump(mode="json")

    except Exception as e:
        db.rollback()
        logger.error(f"Error dispatching reminder {reminder_id}: {e}")
        return {"reminder_id": reminder_id, "outcome": "error", "detail": str(e)}

    finally:
        db.close()


@app.task
def dispatch_due_reminders() -> dict:
    """Queue a callback for active reminders whose time has passed.

    Covers callbacks lost by the broker. Duplicates are harmless.
    """
    db = SessionLocal()
    try:
        due = (
            db.query(Reminder.id)
            .filter(Reminder.status.in_(ACTIVE_STATUSES))
            .filter(Reminder.scheduled_time <= utcnow())
            .order_by(Reminder.scheduled_time)
            .limit(DUE_BATCH_SIZE)
            .all()
        )
        for (reminder_id,) in due:
            fire_reminder.delay(reminder_id)

        logger.info(f"Queued {len(due)} due reminders")
        return {"queued": len(due)}

    finally:
        db.close()


@app.task
def check_overdue_reminders() -> dict:
    """Log overdue reminders once each and queue missed-reminder popups."""
    from followup.services.sweeps import SweepService

    db = SessionLocal()
    try:
        return SweepService(db).detect_overdue_reminders()

    finally:
        db.close()
