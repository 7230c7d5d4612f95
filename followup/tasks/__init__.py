"""Celery tasks for the follow-up engine."""

from followup.tasks.activity_tasks import check_inactivity
from followup.tasks.popup_tasks import expire_popups
from followup.tasks.reminder_tasks import (
    check_overdue_reminders,
    dispatch_due_reminders,
    fire_reminder,
)

__all__ = [
    "check_inactivity",
    "check_overdue_reminders",
    "dispatch_due_reminders",
    "expire_popups",
    "fire_reminder",
]
