"""Celery application configuration."""

from celery import Celery

from followup.config import get_settings

settings = get_settings()

app = Celery(
    "followup",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "followup.tasks.reminder_tasks",
        "followup.tasks.popup_tasks",
        "followup.tasks.activity_tasks",
    ],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Result expiration
    result_expires=3600,  # 1 hour
    # Beat schedule for periodic tasks
    beat_schedule={
        "dispatch-due-reminders-every-minute": {
            "task": "followup.tasks.reminder_tasks.dispatch_due_reminders",
            "schedule": 60.0,  # Every minute
        },
        "check-overdue-reminders-every-minute": {
            "task": "followup.tasks.reminder_tasks.check_overdue_reminders",
            "schedule": 60.0,
        },
        "expire-popups-every-5-minutes": {
            "task": "followup.tasks.popup_tasks.expire_popups",
            "schedule": 300.0,
        },
        "check-inactivity-hourly": {
            "task": "followup.tasks.activity_tasks.check_inactivity",
            "schedule": 3600.0,
        },
    },
)
