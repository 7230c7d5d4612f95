"""Conflict detection and bundling.

Reminders of the same user scheduled within ``bundle_window_minutes`` of each
other are merged into one bundle and delivered as a single message.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from followup.clock import to_naive_utc, utcnow
from followup.models.bundle import ReminderBundle, ReminderBundleItem
from followup.models.event import EventSource, EventType
from followup.models.preferences import BundleFormat
from followup.models.reminder import ACTIVE_STATUSES, Reminder, ReminderStatus
from followup.schemas.reminder import ConflictResult
from followup.services.events import log_event
from followup.services.preferences import PreferenceStore

logger = logging.getLogger(__name__)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


class BundlingService:
    """Detects scheduling conflicts and manages reminder bundles."""

    def __init__(self, db: Session, preferences: PreferenceStore | None = None):
        self.db = db
        self.preferences = preferences or PreferenceStore(db)

    def find_conflicts(
        self, user_id: int, reminder_id: int, scheduled_time: datetime, window_minutes: int
    ) -> list[Reminder]:
        """Other pending reminders of the user within the window, earliest first."""
        window = timedelta(minutes=window_minutes)
        return (
            self.db.query(Reminder)
            .filter(
                Reminder.user_id == user_id,
                Reminder.id != reminder_id,
                Reminder.status == ReminderStatus.PENDING.value,
                Reminder.scheduled_time >= scheduled_time - window,
                Reminder.scheduled_time <= scheduled_time + window,
            )
            .order_by(Reminder.scheduled_time, Reminder.id)
            .all()
        )

    def check_and_handle_conflicts(
        self, user_id: int, reminder_id: int, scheduled_time: datetime
    ) -> ConflictResult:
        """Merge a reminder with its time conflicts, creating or extending a bundle."""
        prefs = self.preferences.get_snooze_preferences(user_id)
        if not prefs.bundle_enabled:
            return ConflictResult(should_bundle=False)

        scheduled_time = to_naive_utc(scheduled_time)
        conflicts = self.find_conflicts(
            user_id, reminder_id, scheduled_time, prefs.bundle_window_minutes
        )
        if not conflicts:
            return ConflictResult(should_bundle=False)

        member_ids = [reminder_id] + [r.id for r in conflicts]
        window = timedelta(minutes=prefs.bundle_window_minutes)

        existing = (
            self.db.query(ReminderBundle)
            .filter(
                ReminderBundle.user_id == user_id,
                ReminderBundle.delivered.is_(False),
                ReminderBundle.bundle_time >= scheduled_time - window,
                ReminderBundle.bundle_time <= scheduled_time + window,
            )
            .order_by(ReminderBundle.bundle_time, ReminderBundle.id)
            .first()
        )
        if existing is not None:
            bundle = self._append(existing, member_ids)
            if bundle is not None:
                return ConflictResult(
                    should_bundle=True, bundle_id=bundle.id, reminder_ids=bundle.reminder_ids
                )

        bundle_time = min([scheduled_time] + [r.scheduled_time for r in conflicts])
        bundle = ReminderBundle(
            user_id=user_id,
            bundle_time=bundle_time,
            delivery_format=BundleFormat(prefs.bundle_format).value,
            delivered=False,
        )
        self.db.add(bundle)
        self.db.flush()
        for member_id in member_ids:
            self.db.add(ReminderBundleItem(bundle_id=bundle.id, reminder_id=member_id))
        self.db.commit()
        self.db.refresh(bundle)

        logger.info(f"Created bundle {bundle.id} for user {user_id} with reminders {member_ids}")
        return ConflictResult(
            should_bundle=True, bundle_id=bundle.id, reminder_ids=bundle.reminder_ids
        )

    def _append(self, bundle: ReminderBundle, member_ids: list[int]) -> ReminderBundle | None:
        """Add missing members to an undelivered bundle.

        Returns None when the bundle was delivered concurrently, in which case
        nothing is added.
        """
        present = set(bundle.reminder_ids)
        added = [member_id for member_id in member_ids if member_id not in present]
        for member_id in added:
            self.db.add(ReminderBundleItem(bundle_id=bundle.id, reminder_id=member_id))
        self.db.flush()

        delivered = (
            self.db.query(ReminderBundle.delivered)
            .filter(ReminderBundle.id == bundle.id)
            .scalar()
        )
        if delivered:
            self.db.rollback()
            logger.warning(f"Bundle {bundle.id} was delivered before reminders could join it")
            return None

        self.db.commit()
        self.db.refresh(bundle)
        if added:
            logger.info(f"Added reminders {added} to bundle {bundle.id}")
        return bundle

    def remove_members(self, bundle_id: int, reminder_ids: list[int]) -> list[int] | None:
        """Take reminders out of an undelivered bundle.

        Returns:
            The remaining member ids, or None if the bundle was already delivered
        """
        self.db.query(ReminderBundleItem).filter(
            ReminderBundleItem.bundle_id == bundle_id,
            ReminderBundleItem.reminder_id.in_(reminder_ids),
        ).delete(synchronize_session=False)

        delivered = (
            self.db.query(ReminderBundle.delivered)
            .filter(ReminderBundle.id == bundle_id)
            .scalar()
        )
        if delivered:
            self.db.rollback()
            logger.warning(f"Bundle {bundle_id} was delivered before reminders could leave it")
            return None

        self.db.commit()
        bundle = self.db.get(ReminderBundle, bundle_id)
        self.db.refresh(bundle)
        logger.info(f"Removed reminders {reminder_ids} from bundle {bundle_id}")
        return bundle.reminder_ids

    def discard_bundle(self, bundle_id: int) -> bool:
        """Delete an undelivered bundle and its items. False if it was delivered."""
        self.db.query(ReminderBundleItem).filter(
            ReminderBundleItem.bundle_id == bundle_id
        ).delete(synchronize_session=False)
        deleted = (
            self.db.query(ReminderBundle)
            .filter(ReminderBundle.id == bundle_id, ReminderBundle.delivered.is_(False))
            .delete(synchronize_session=False)
        )
        if not deleted:
            self.db.rollback()
            return False
        self.db.commit()
        logger.info(f"Discarded bundle {bundle_id}")
        return True

    def deliver_bundle(self, bundle_id: int, now: datetime | None = None) -> str | None:
        """Mark a bundle delivered and its active reminders sent.

        Only one caller wins the delivered flag; every other caller gets None.

        Returns:
            The formatted bundle message for the winning caller
        """
        now = now or utcnow()
        won = (
            self.db.query(ReminderBundle)
            .filter(ReminderBundle.id == bundle_id, ReminderBundle.delivered.is_(False))
            .update({"delivered": True, "delivered_at": now}, synchronize_session=False)
        )
        if won == 0:
            self.db.rollback()
            logger.info(f"Bundle {bundle_id} already delivered")
            return None

        bundle = self.db.get(ReminderBundle, bundle_id)
        self.db.refresh(bundle)
        reminder_ids = bundle.reminder_ids
        self.db.query(Reminder).filter(
            Reminder.id.in_(reminder_ids), Reminder.status.in_(ACTIVE_STATUSES)
        ).update(
            {"status": ReminderStatus.SENT.value, "sent_time": now},
            synchronize_session=False,
        )

        message = self.format_bundle_message(reminder_ids, bundle.delivery_format)
        log_event(
            self.db,
            bundle.user_id,
            EventType.BUNDLE_DELIVERED,
            {
                "bundle_id": bundle.id,
                "reminder_ids": reminder_ids,
                "delivery_format": bundle.delivery_format,
                "message": message,
            },
            source=EventSource.SCHEDULER,
            created_at=now,
            commit=False,
        )
        self.db.commit()

        logger.info(f"Delivered bundle {bundle_id} with {len(reminder_ids)} reminders")
        return message

    def format_bundle_message(
        self, reminder_ids: list[int], delivery_format: BundleFormat | str
    ) -> str:
        """Render a bundle as list, summary or combined text."""
        by_id = {
            r.id: r for r in self.db.query(Reminder).filter(Reminder.id.in_(reminder_ids)).all()
        }
        reminders = [by_id[rid] for rid in reminder_ids if rid in by_id]
        if not reminders:
            return "You have multiple reminders due."

        count = len(reminders)
        delivery_format = BundleFormat(delivery_format)

        if delivery_format == BundleFormat.LIST:
            lines = []
            for index, reminder in enumerate(reminders, start=1):
                name = reminder.contact.name if reminder.contact is not None else None
                prefix = f"{name}: " if name else ""
                lines.append(f"{index}. {prefix}{reminder.message}")
            return f"You have {count} reminders due:\n\n" + "\n".join(lines)

        if delivery_format == BundleFormat.SUMMARY:
            follow_ups = sum(1 for r in reminders if r.contact_id is not None)
            others = count - follow_ups
            summary = f"You have {_plural(count, 'reminder')} due"
            if follow_ups:
                summary += f" ({_plural(follow_ups, 'follow-up')}"
                if others:
                    summary += f", {_plural(others, 'other')}"
                summary += ")"
            return summary

        return f"You have {_plural(count, 'reminder')} due. Check your reminders to see details."

    def pending_bundle_for(self, reminder_id: int) -> ReminderBundle | None:
        """Undelivered bundle that already contains the reminder, if any."""
        return (
            self.db.query(ReminderBundle)
            .join(ReminderBundleItem, ReminderBundleItem.bundle_id == ReminderBundle.id)
            .filter(
                ReminderBundleItem.reminder_id == reminder_id,
                ReminderBundle.delivered.is_(False),
            )
            .first()
        )
