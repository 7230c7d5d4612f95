"""Reminder dispatcher.

Runs when the scheduler fires for a reminder. Redelivery of the same callback
is harmless: inactive or not-yet-due reminders are skipped, and the reminder
is claimed with a conditional update before anything is sent.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from followup.clock import to_naive_utc, utcnow
from followup.models.bundle import ReminderBundle
from followup.models.cooldown import ReminderCooldown
from followup.models.event import EventSource, EventType
from followup.models.reminder import (
    ACTIVE_STATUSES,
    NotificationMethod,
    Reminder,
    ReminderStatus,
)
from followup.models.user import User
from followup.schemas.reminder import DispatchResult
from followup.services.affirmations import AffirmationService
from followup.services.bundling import BundlingService
from followup.services.events import log_event
from followup.services.notifications import NotificationService, get_notification_service
from followup.services.popups import PopupEngine
from followup.services.preferences import PreferenceStore
from followup.services.scheduling import ReminderScheduler, get_scheduler
from followup.services.suppression import GENERIC_COOLDOWN_BUCKET, SuppressionEngine

logger = logging.getLogger(__name__)


def record_cooldown(db: Session, user_id: int, contact_id: int | None, at: datetime) -> None:
    """Upsert the last-delivery time for a contact or the generic bucket."""
    query = db.query(ReminderCooldown).filter(ReminderCooldown.user_id == user_id)
    if contact_id is not None:
        query = query.filter(ReminderCooldown.contact_id == contact_id)
        entity_type = "contact"
    else:
        query = query.filter(
            ReminderCooldown.contact_id.is_(None),
            ReminderCooldown.entity_type == GENERIC_COOLDOWN_BUCKET,
        )
        entity_type = GENERIC_COOLDOWN_BUCKET

    row = query.first()
    if row is None:
        db.add(
            ReminderCooldown(
                user_id=user_id,
                contact_id=contact_id,
                entity_type=entity_type,
                last_reminder_at=at,
            )
        )
    else:
        row.last_reminder_at = max(row.last_reminder_at, at)


class ReminderDispatcher:
    """Evaluates, bundles and delivers a due reminder."""

    def __init__(
        self,
        db: Session,
        notifier: NotificationService | None = None,
        scheduler: ReminderScheduler | None = None,
    ):
        self.db = db
        self.preferences = PreferenceStore(db)
        self.notifier = notifier or get_notification_service()
        self.scheduler = scheduler or get_scheduler()
        self.suppression = SuppressionEngine(db, self.preferences)
        self.bundling = BundlingService(db, self.preferences)
        self.affirmations = AffirmationService(db, self.preferences)
        self.popups = PopupEngine(
            db, self.preferences, affirmations=self.affirmations, scheduler=self.scheduler
        )

    async def dispatch(self, reminder_id: int, now: datetime | None = None) -> DispatchResult:
        """Handle one scheduler callback for a reminder."""
        now = to_naive_utc(now) if now else utcnow()

        reminder = self.db.get(Reminder, reminder_id)
        if reminder is None:
            logger.warning(f"Reminder {reminder_id} not found")
            return DispatchResult(reminder_id=reminder_id, outcome="missing")
        if not reminder.is_active:
            return DispatchResult(
                reminder_id=reminder_id, outcome="skipped", detail=f"status {reminder.status}"
            )
        if reminder.scheduled_time > now:
            return DispatchResult(reminder_id=reminder_id, outcome="not_due")

        user = self.db.get(User, reminder.user_id)
        decision = self.suppression.evaluate(
            reminder.user_id,
            reminder.id,
            reminder.scheduled_time,
            user.timezone if user else None,
        )
        if decision.suppressed:
            return self._defer(reminder, decision.reason, decision.next_attempt_time)

        conflict = self.bundling.check_and_handle_conflicts(
            reminder.user_id, reminder.id, reminder.scheduled_time
        )
        if conflict.should_bundle:
            remaining = self._admit_bundle_members(reminder, user, conflict.bundle_id)
            if remaining == [reminder.id] and self.bundling.discard_bundle(conflict.bundle_id):
                return await self._deliver_single(reminder, user, now)
            return await self._deliver_bundle(reminder, user, conflict.bundle_id, now)
        return await self._deliver_single(reminder, user, now)

    def _admit_bundle_members(
        self, reminder: Reminder, user: User | None, bundle_id: int
    ) -> list[int] | None:
        """Run the other bundle members through suppression before they ride along.

        Members share the daily cap with the reminders admitted before them.
        Suppressed members leave the bundle and are deferred on their own.

        Returns:
            Member ids left in the bundle, or None if it was delivered meanwhile
        """
        bundle = self.db.get(ReminderBundle, bundle_id)
        others = (
            self.db.query(Reminder)
            .filter(
                Reminder.id.in_(bundle.reminder_ids),
                Reminder.id != reminder.id,
                Reminder.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Reminder.scheduled_time, Reminder.id)
            .all()
        )

        admitted = 1
        rejected = []
        for member in others:
            decision = self.suppression.evaluate(
                member.user_id,
                member.id,
                member.scheduled_time,
                user.timezone if user else None,
                pending_sends=admitted,
            )
            if decision.suppressed:
                rejected.append((member, decision))
            else:
                admitted += 1

        if not rejected:
            return bundle.reminder_ids
        remaining = self.bundling.remove_members(bundle_id, [member.id for member, _ in rejected])
        if remaining is None:
            return None
        for member, decision in rejected:
            self._defer(member, decision.reason, decision.next_attempt_time)
        return remaining

    def _defer(
        self, reminder: Reminder, reason: str, next_attempt: datetime | None
    ) -> DispatchResult:
        prior = reminder.status
        if next_attempt is None:
            self.db.query(Reminder).filter(
                Reminder.id == reminder.id, Reminder.status == prior
            ).update({"status": ReminderStatus.SUPPRESSED.value}, synchronize_session=False)
            self.db.commit()
            logger.info(f"Reminder {reminder.id} suppressed ({reason}) with no retry")
            return DispatchResult(reminder_id=reminder.id, outcome="suppressed", detail=reason)

        moved = (
            self.db.query(Reminder)
            .filter(Reminder.id == reminder.id, Reminder.status == prior)
            .update({"scheduled_time": next_attempt}, synchronize_session=False)
        )
        self.db.commit()
        if moved:
            self.scheduler.schedule(reminder.id, next_attempt)
        return DispatchResult(
            reminder_id=reminder.id,
            outcome="deferred",
            detail=reason,
            next_attempt_time=next_attempt,
        )

    def _claim(self, reminder: Reminder, now: datetime) -> bool:
        won = (
            self.db.query(Reminder)
            .filter(Reminder.id == reminder.id, Reminder.status.in_(ACTIVE_STATUSES))
            .update(
                {"status": ReminderStatus.SENT.value, "sent_time": now},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return won == 1

    async def _deliver_single(
        self, reminder: Reminder, user: User | None, now: datetime
    ) -> DispatchResult:
        if not self._claim(reminder, now):
            return DispatchResult(reminder_id=reminder.id, outcome="skipped", detail="claimed")
        self.db.refresh(reminder)

        title = "Reminder"
        if reminder.contact is not None:
            title = f"Follow up with {reminder.contact.name}"
        result = await self._send(reminder, user, title, reminder.message, now)

        if not result.get("success"):
            self.db.query(Reminder).filter(Reminder.id == reminder.id).update(
                {"status": ReminderStatus.FAILED.value}, synchronize_session=False
            )
            self._log(reminder, EventType.REMINDER_FAILED, now, error=result.get("error"))
            self.db.commit()
            return DispatchResult(
                reminder_id=reminder.id, outcome="failed", detail=result.get("error")
            )

        record_cooldown(self.db, reminder.user_id, reminder.contact_id, now)
        self._log(reminder, EventType.REMINDER_SENT, now)
        self.db.commit()
        logger.info(f"Delivered reminder {reminder.id} via {reminder.notification_method}")
        return DispatchResult(reminder_id=reminder.id, outcome="sent")

    async def _deliver_bundle(
        self, reminder: Reminder, user: User | None, bundle_id: int, now: datetime
    ) -> DispatchResult:
        message = self.bundling.deliver_bundle(bundle_id, now)
        if message is None:
            return DispatchResult(
                reminder_id=reminder.id, outcome="skipped", detail="bundle already delivered"
            )
        self.db.refresh(reminder)

        result = await self._send(reminder, user, "Reminders due", message, now)
        delivered = bool(result.get("success"))

        bundle = self.db.get(ReminderBundle, bundle_id)
        members = self.db.query(Reminder).filter(Reminder.id.in_(bundle.reminder_ids)).all()
        if not delivered:
            self.db.query(Reminder).filter(
                Reminder.id.in_(bundle.reminder_ids),
                Reminder.status == ReminderStatus.SENT.value,
                Reminder.sent_time == now,
            ).update({"status": ReminderStatus.FAILED.value}, synchronize_session=False)
        event_type = EventType.REMINDER_SENT if delivered else EventType.REMINDER_FAILED
        for member in members:
            if delivered:
                record_cooldown(self.db, member.user_id, member.contact_id, now)
            self._log(member, event_type, now, error=result.get("error"), bundle_id=bundle_id)
        self.db.commit()

        outcome = "bundled" if delivered else "failed"
        logger.info(f"Bundle {bundle_id} for reminder {reminder.id}: {outcome}")

        return DispatchResult(
            reminder_id=reminder.id,
            outcome=outcome,
            detail=result.get("error"),
            bundle_id=bundle_id,
        )

    async def _send(
        self, reminder: Reminder, user: User | None, title: str, body: str, now: datetime
    ) -> dict[str, Any]:
        method = reminder.notification_method
        if method == NotificationMethod.PUSH.value:
            selection = self.affirmations.select(reminder.user_id, "reminder_due", now=now)
            return await self.notifier.send(
                user.ntfy_topic if user else None,
                title,
                body,
                affirmation=selection.text if selection else None,
                click_url=self.notifier.get_reminder_url(reminder.id),
            )

        if method == NotificationMethod.IN_APP.value:
            event = log_event(
                self.db,
                reminder.user_id,
                EventType.REMINDER_DUE,
                {
                    "reminder_id": reminder.id,
                    "message": body,
                    "scheduled_time": reminder.scheduled_time,
                },
                source=EventSource.SCHEDULER,
                contact_id=reminder.contact_id,
                reminder_id=reminder.id,
                created_at=now,
            )
            self.popups.feed([event], now)
            return {"success": True}

        return {"success": False, "error": f"No transport for '{method}' reminders"}

    def _log(
        self,
        reminder: Reminder,
        event_type: EventType,
        now: datetime,
        error: str | None = None,
        bundle_id: int | None = None,
    ) -> None:
        data: dict[str, Any] = {
            "reminder_id": reminder.id,
            "scheduled_time": reminder.scheduled_time,
        }
        if error:
            data["error"] = error
        if bundle_id is not None:
            data["bundle_id"] = bundle_id
        log_event(
            self.db,
            reminder.user_id,
            event_type,
            data,
            source=EventSource.SCHEDULER,
            contact_id=reminder.contact_id,
            reminder_id=reminder.id,
            created_at=now,
            commit=False,
        )
