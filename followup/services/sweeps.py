"""Periodic sweeps over all users.

Both sweeps are safe to run repeatedly: they check for an existing event of
the same kind before logging a new one.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from followup.clock import to_naive_utc, utcnow
from followup.config import get_app_config
from followup.models.event import Event, EventSource, EventType
from followup.models.reminder import ACTIVE_STATUSES, Reminder
from followup.models.user import User
from followup.services.events import has_event, log_event
from followup.services.popups import PopupEngine
from followup.services.scheduling import ReminderScheduler

logger = logging.getLogger(__name__)

# Sources that reflect the user doing something
ACTIVITY_SOURCES = (EventSource.APP.value, EventSource.CLIENT.value)


class SweepService:
    """Overdue and inactivity detection."""

    def __init__(self, db: Session, scheduler: ReminderScheduler | None = None):
        self.db = db
        self.config = get_app_config().sweeps
        self.popups = PopupEngine(db, scheduler=scheduler)

    def detect_overdue_reminders(self, now: datetime | None = None) -> dict[str, Any]:
        """Log ``reminder_overdue`` once per active reminder past its time."""
        now = to_naive_utc(now) if now else utcnow()
        cutoff = now - timedelta(minutes=self.config.get("overdue_grace_minutes", 5))

        overdue = (
            self.db.query(Reminder)
            .filter(Reminder.status.in_(ACTIVE_STATUSES), Reminder.scheduled_time < cutoff)
            .order_by(Reminder.scheduled_time)
            .limit(self.config.get("overdue_batch_size", 200))
            .all()
        )

        logged = 0
        popups = 0
        for reminder in overdue:
            if has_event(
                self.db, reminder.user_id, EventType.REMINDER_OVERDUE, reminder_id=reminder.id
            ):
                continue
            minutes_overdue = int((now - reminder.scheduled_time).total_seconds() // 60)
            event = log_event(
                self.db,
                reminder.user_id,
                EventType.REMINDER_OVERDUE,
                {
                    "reminder_id": reminder.id,
                    "scheduled_time": reminder.scheduled_time,
                    "message": reminder.message,
                    "minutes_overdue": minutes_overdue,
                },
                source=EventSource.SCHEDULER,
                contact_id=reminder.contact_id,
                reminder_id=reminder.id,
                created_at=now,
            )
            logged += 1
            popups += len(self.popups.feed([event], now))

        logger.info(f"Overdue sweep: {len(overdue)} overdue, {logged} newly logged")
        return {"checked": len(overdue), "logged": logged, "popups": popups}

    def detect_inactivity(self, now: datetime | None = None) -> dict[str, Any]:
        """Log ``inactivity_detected`` for users idle past the threshold."""
        now = to_naive_utc(now) if now else utcnow()
        threshold = now - timedelta(hours=self.config.get("inactivity_threshold_hours", 24))
        repeat_after = now - timedelta(hours=self.config.get("inactivity_repeat_hours", 6))

        last_activity = (
            self.db.query(Event.user_id, func.max(Event.created_at).label("last_at"))
            .filter(Event.source.in_(ACTIVITY_SOURCES))
            .group_by(Event.user_id)
            .subquery()
        )
        idle = (
            self.db.query(User.id, last_activity.c.last_at)
            .join(last_activity, last_activity.c.user_id == User.id)
            .filter(last_activity.c.last_at < threshold)
            .all()
        )

        logged = 0
        for user_id, last_at in idle:
            if has_event(self.db, user_id, EventType.INACTIVITY_DETECTED, since=repeat_after):
                continue
            event = log_event(
                self.db,
                user_id,
                EventType.INACTIVITY_DETECTED,
                {
                    "hours_inactive": int((now - last_at).total_seconds() // 3600),
                    "last_activity_at": last_at,
                },
                source=EventSource.SYSTEM,
                created_at=now,
            )
            logged += 1
            self.popups.feed([event], now)

        logger.info(f"Inactivity sweep: {len(idle)} idle users, {logged} newly logged")
        return {"idle_users": len(idle), "logged": logged}
