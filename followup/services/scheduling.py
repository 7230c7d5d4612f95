"""Scheduler seam.

The engine never sleeps. It asks a scheduler to call back at an instant, and
the Celery implementation turns that into a task with an ``eta``.
"""

import logging
from datetime import datetime, timezone
from typing import Protocol

from followup.clock import to_naive_utc

logger = logging.getLogger(__name__)


class ReminderScheduler(Protocol):
    def schedule(self, reminder_id: int, at: datetime) -> None: ...


class CeleryReminderScheduler:
    """Schedules ``fire_reminder`` on the Celery worker pool."""

    def schedule(self, reminder_id: int, at: datetime) -> None:
        from followup.tasks.reminder_tasks import fire_reminder

        eta = to_naive_utc(at).replace(tzinfo=timezone.utc)
        fire_reminder.apply_async(args=[reminder_id], eta=eta)
        logger.info(f"Scheduled reminder {reminder_id} for {eta.isoformat()}")


def get_scheduler() -> ReminderScheduler:
    """Get the scheduler used by request handlers and tasks."""
    return CeleryReminderScheduler()
