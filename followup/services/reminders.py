"""Reminder lifecycle actions shared by the HTTP layer and the popup engine."""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from followup.clock import to_naive_utc, utcnow
from followup.models.event import Event, EventSource, EventType
from followup.models.reminder import Reminder, ReminderStatus
from followup.models.snooze_history import SnoozeReason
from followup.schemas.reminder import ReminderCreate
from followup.services.events import log_event
from followup.services.preferences import PreferenceStore, categorize_reminder
from followup.services.scheduling import ReminderScheduler, get_scheduler
from followup.services.smart_snooze import SmartSnoozeService

logger = logging.getLogger(__name__)


class ReminderService:
    """Creates, completes, snoozes and dismisses reminders."""

    def __init__(
        self,
        db: Session,
        scheduler: ReminderScheduler | None = None,
        preferences: PreferenceStore | None = None,
    ):
        self.db = db
        self.scheduler = scheduler or get_scheduler()
        self.preferences = preferences or PreferenceStore(db)
        self.snooze_service = SmartSnoozeService(db, self.preferences)

    def create(self, reminder_in: ReminderCreate) -> Reminder:
        """Persist a reminder and ask the scheduler to fire it when due."""
        values = reminder_in.model_dump()
        values["scheduled_time"] = to_naive_utc(reminder_in.scheduled_time)
        values["notification_method"] = reminder_in.notification_method.value
        reminder = Reminder(**values, status=ReminderStatus.PENDING.value)
        self.db.add(reminder)
        self.db.flush()

        log_event(
            self.db,
            reminder.user_id,
            EventType.REMINDER_CREATED,
            {"reminder_id": reminder.id, "scheduled_time": reminder.scheduled_time},
            source=EventSource.APP,
            contact_id=reminder.contact_id,
            reminder_id=reminder.id,
            commit=False,
        )
        self.db.commit()
        self.db.refresh(reminder)

        self.schedule(reminder.id, reminder.scheduled_time)
        logger.info(f"Created reminder {reminder.id} for user {reminder.user_id}")
        return reminder

    def schedule(self, reminder_id: int, at: datetime) -> None:
        try:
            self.scheduler.schedule(reminder_id, at)
        except Exception as e:
            # The due-reminder sweep picks it up later
            logger.error(f"Failed to schedule reminder {reminder_id} at {at}: {e}")

    def complete(
        self, reminder: Reminder, now: datetime | None = None, commit: bool = True
    ) -> Event:
        """Mark a reminder done and log ``reminder_completed``."""
        now = to_naive_utc(now) if now else utcnow()
        reminder.status = ReminderStatus.SENT.value
        reminder.sent_time = reminder.sent_time or now
        event = log_event(
            self.db,
            reminder.user_id,
            EventType.REMINDER_COMPLETED,
            {"reminder_id": reminder.id, "message": reminder.message},
            source=EventSource.CLIENT,
            contact_id=reminder.contact_id,
            reminder_id=reminder.id,
            created_at=now,
            commit=commit,
        )
        logger.info(f"Completed reminder {reminder.id}")
        return event

    def dismiss(self, reminder: Reminder, now: datetime | None = None) -> Event:
        now = to_naive_utc(now) if now else utcnow()
        reminder.status = ReminderStatus.DISMISSED.value
        event = log_event(
            self.db,
            reminder.user_id,
            EventType.REMINDER_DISMISSED,
            {"reminder_id": reminder.id},
            source=EventSource.CLIENT,
            contact_id=reminder.contact_id,
            reminder_id=reminder.id,
            created_at=now,
        )
        logger.info(f"Dismissed reminder {reminder.id}")
        return event

    def default_snooze_minutes(
        self, reminder: Reminder, now: datetime
    ) -> tuple[int, SnoozeReason]:
        """Smart suggestion when enabled, otherwise the category default."""
        suggestion = self.snooze_service.suggest(reminder.user_id, reminder.id, now=now)
        if suggestion is not None:
            return suggestion.duration_minutes, SnoozeReason.SMART_SUGGESTION
        category = categorize_reminder(reminder.message, reminder.contact_id)
        pref = self.preferences.get_category_preference(reminder.user_id, category)
        return pref.default_duration_minutes, SnoozeReason.AUTO

    def snooze(
        self,
        reminder: Reminder,
        until: datetime,
        reason: SnoozeReason | str = SnoozeReason.USER_ACTION,
        now: datetime | None = None,
        source: EventSource = EventSource.CLIENT,
        commit: bool = True,
    ) -> bool:
        """Reschedule a reminder into a new active cycle.

        With ``commit=False`` the caller commits and then calls :meth:`schedule`.

        Returns:
            False when the reminder was dismissed and cannot be rescheduled
        """
        now = to_naive_utc(now) if now else utcnow()
        until = to_naive_utc(until)
        if reminder.status == ReminderStatus.DISMISSED.value:
            logger.warning(f"Reminder {reminder.id} was dismissed; not rescheduling")
            return False

        reminder.status = ReminderStatus.SNOOZED.value
        reminder.scheduled_time = until
        minutes = max(1, round((until - now) / timedelta(minutes=1)))
        self.snooze_service.log_snooze(
            reminder.user_id,
            minutes,
            reason=reason,
            reminder_id=reminder.id,
            context={"source": source.value},
            now=now,
            commit=False,
        )
        log_event(
            self.db,
            reminder.user_id,
            EventType.REMINDER_SNOOZED,
            {"reminder_id": reminder.id, "snooze_until": until},
            source=source,
            contact_id=reminder.contact_id,
            reminder_id=reminder.id,
            created_at=now,
            commit=False,
        )
        if commit:
            self.db.commit()
            self.schedule(reminder.id, until)
        logger.info(f"Snoozed reminder {reminder.id} until {until}")
        return True
