"""Suppression policy engine.

Decides whether a reminder may fire at a given instant. Rules are an ordered
table of ``(reason, predicate)`` pairs and the first match wins. When a
reminder is suppressed the engine also finds the earliest instant at which
every schedule constraint holds at once.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import func
from sqlalchemy.orm import Session

from followup.clock import get_tz, local_day_bounds, to_local, to_naive_utc
from followup.models.cooldown import ReminderCooldown
from followup.models.event import Event, EventSource, EventType
from followup.models.reminder import Reminder
from followup.models.user import User
from followup.schemas.preferences import SnoozePreferencesData
from followup.schemas.reminder import SuppressionDecision
from followup.services import time_windows
from followup.services.events import log_event, query_events
from followup.services.preferences import PreferenceStore, categorize_reminder

logger = logging.getLogger(__name__)

# Upper bound for the retry search
SEARCH_HORIZON = timedelta(days=14)
MAX_SEARCH_STEPS = 50

GENERIC_COOLDOWN_BUCKET = "generic"


class SuppressionReason(str, Enum):
    QUIET_HOURS = "quiet_hours"
    WORKING_HOURS = "working_hours"
    WEEKEND = "weekend"
    DAILY_CAP = "daily_cap"
    COOLDOWN_ACTIVE = "cooldown_active"
    CATEGORY_DISABLED = "category_disabled"
    DND_ACTIVE = "dnd_active"
    OTHER = "other"


REASON_MESSAGES = {
    SuppressionReason.QUIET_HOURS: "Reminder falls within quiet hours",
    SuppressionReason.WORKING_HOURS: "Reminder falls outside working hours",
    SuppressionReason.WEEKEND: "Weekend reminders are disabled",
    SuppressionReason.DAILY_CAP: "Daily reminder limit reached",
    SuppressionReason.COOLDOWN_ACTIVE: "A reminder for this contact was sent recently",
    SuppressionReason.CATEGORY_DISABLED: "Reminders of this category are disabled",
    SuppressionReason.DND_ACTIVE: "Do not disturb is on",
    SuppressionReason.OTHER: "Reminder suppressed",
}

RULE_NAMES = {
    SuppressionReason.QUIET_HOURS: "Quiet Hours",
    SuppressionReason.WORKING_HOURS: "Working Hours",
    SuppressionReason.WEEKEND: "Weekend Settings",
    SuppressionReason.DAILY_CAP: "Daily Cap",
    SuppressionReason.COOLDOWN_ACTIVE: "Cooldown",
    SuppressionReason.CATEGORY_DISABLED: "Category Settings",
    SuppressionReason.DND_ACTIVE: "Do Not Disturb",
    SuppressionReason.OTHER: "Other",
}


@dataclass
class EvaluationContext:
    """Everything a rule needs to judge one reminder at one instant."""

    user_id: int
    fire_time: datetime
    local: datetime
    tz: object
    prefs: SnoozePreferencesData
    reminder: Reminder | None
    # Sends already committed to this local day but not yet logged
    pending_sends: int = 0


class SuppressionEngine:
    """Evaluates reminders against the user's schedule policy."""

    def __init__(self, db: Session, preferences: PreferenceStore | None = None):
        self.db = db
        self.preferences = preferences or PreferenceStore(db)
        self.rules: list[tuple[SuppressionReason, Callable[[EvaluationContext], bool]]] = [
            (SuppressionReason.QUIET_HOURS, self._quiet_hours),
            (SuppressionReason.WORKING_HOURS, self._working_hours),
            (SuppressionReason.WEEKEND, self._weekend),
            (SuppressionReason.DAILY_CAP, self._daily_cap),
            (SuppressionReason.COOLDOWN_ACTIVE, self._cooldown_active),
            (SuppressionReason.CATEGORY_DISABLED, self._category_disabled),
            (SuppressionReason.DND_ACTIVE, self._dnd_active),
        ]

    def evaluate(
        self,
        user_id: int,
        reminder_id: int | None,
        scheduled_time: datetime,
        timezone: str | None = None,
        log: bool = True,
        pending_sends: int = 0,
    ) -> SuppressionDecision:
        """Decide whether a reminder may fire at ``scheduled_time``.

        Args:
            user_id: Owner of the reminder
            reminder_id: Reminder being evaluated, or None for a hypothetical slot
            scheduled_time: Intended fire time (aware, or naive UTC)
            timezone: IANA name; defaults to the user's stored timezone
            log: Record a ``reminder_suppressed`` event when suppressed
            pending_sends: Deliveries for this user already admitted alongside this
                one, counted against the daily cap

        Returns:
            SuppressionDecision with the first matching reason and, where one
            exists, the earliest instant satisfying every schedule constraint
        """
        fire_time = to_naive_utc(scheduled_time)
        if timezone is None:
            user = self.db.get(User, user_id)
            timezone = user.timezone if user else None
        tz = get_tz(timezone)

        reminder = self.db.get(Reminder, reminder_id) if reminder_id is not None else None
        ctx = EvaluationContext(
            user_id=user_id,
            fire_time=fire_time,
            local=to_local(fire_time, tz),
            tz=tz,
            prefs=self.preferences.get_snooze_preferences(user_id),
            reminder=reminder,
            pending_sends=pending_sends,
        )

        reason = next((reason for reason, rule in self.rules if rule(ctx)), None)
        if reason is None:
            return SuppressionDecision(suppressed=False)

        decision = SuppressionDecision(
            suppressed=True,
            reason=reason.value,
            next_attempt_time=self.next_attempt_time(ctx, reason),
            message=REASON_MESSAGES[reason],
        )
        logger.info(
            f"Reminder {reminder_id} for user {user_id} suppressed at {fire_time}: "
            f"{reason.value}, next attempt {decision.next_attempt_time}"
        )

        if log and reminder_id is not None:
            self.record_suppression(user_id, reminder_id, fire_time, decision)
        return decision

    # Rules

    def _quiet_hours(self, ctx: EvaluationContext) -> bool:
        return time_windows.in_quiet_hours(ctx.prefs, ctx.local)

    def _working_hours(self, ctx: EvaluationContext) -> bool:
        return time_windows.outside_working_hours(ctx.prefs, ctx.local)

    def _weekend(self, ctx: EvaluationContext) -> bool:
        return time_windows.blocked_weekend(ctx.prefs, ctx.local)

    def _daily_cap(self, ctx: EvaluationContext) -> bool:
        return self._cap_reached(
            ctx.user_id, ctx.prefs, ctx.fire_time, ctx.tz, ctx.pending_sends
        )

    def _cooldown_active(self, ctx: EvaluationContext) -> bool:
        last = self._last_delivery(ctx)
        if last is None or ctx.prefs.cooldown_minutes <= 0:
            return False
        return last <= ctx.fire_time < last + timedelta(minutes=ctx.prefs.cooldown_minutes)

    def _category_disabled(self, ctx: EvaluationContext) -> bool:
        if ctx.reminder is None:
            return False
        category = categorize_reminder(ctx.reminder.message, ctx.reminder.contact_id)
        return not self.preferences.get_category_preference(ctx.user_id, category).enabled

    def _dnd_active(self, ctx: EvaluationContext) -> bool:
        if not ctx.prefs.dnd_enabled:
            return False
        if ctx.reminder is None:
            return True
        overrides = ctx.prefs.dnd_override_rules
        contact_id = ctx.reminder.contact_id
        if contact_id is not None and contact_id in overrides.emergency_contacts:
            return False
        message = (ctx.reminder.message or "").lower()
        keywords = [keyword.lower() for keyword in overrides.override_keywords if keyword]
        return not any(keyword in message for keyword in keywords)

    # Helpers

    def fired_on_day(self, user_id: int, at: datetime, tz) -> int:
        """Count reminder deliveries logged on the local day containing ``at``.

        Counted from ``reminder_sent`` events, so a delivered reminder that was
        later snoozed or completed still uses up its slot.
        """
        start, end = local_day_bounds(at, tz)
        return (
            self.db.query(func.count(Event.id))
            .filter(
                Event.user_id == user_id,
                Event.event_type == EventType.REMINDER_SENT.value,
                Event.created_at >= start,
                Event.created_at < end,
            )
            .scalar()
        )

    def _cap_reached(
        self,
        user_id: int,
        prefs: SnoozePreferencesData,
        at: datetime,
        tz,
        pending: int = 0,
    ) -> bool:
        return self.fired_on_day(user_id, at, tz) + pending >= prefs.max_reminders_per_day

    def _last_delivery(self, ctx: EvaluationContext) -> datetime | None:
        query = self.db.query(ReminderCooldown).filter(ReminderCooldown.user_id == ctx.user_id)
        contact_id = ctx.reminder.contact_id if ctx.reminder is not None else None
        if contact_id is not None:
            query = query.filter(ReminderCooldown.contact_id == contact_id)
        else:
            query = query.filter(
                ReminderCooldown.contact_id.is_(None),
                ReminderCooldown.entity_type == GENERIC_COOLDOWN_BUCKET,
            )
        row = query.first()
        return row.last_reminder_at if row else None

    def next_attempt_time(
        self, ctx: EvaluationContext, reason: SuppressionReason
    ) -> datetime | None:
        """Earliest instant at which quiet, working, day and cap constraints all hold."""
        if reason in (SuppressionReason.CATEGORY_DISABLED, SuppressionReason.DND_ACTIVE):
            return None

        prefs = ctx.prefs
        candidate = ctx.fire_time
        if reason == SuppressionReason.COOLDOWN_ACTIVE:
            last = self._last_delivery(ctx)
            if last is not None:
                candidate = max(candidate, last + timedelta(minutes=prefs.cooldown_minutes))

        horizon = ctx.fire_time + SEARCH_HORIZON
        fire_day = local_day_bounds(ctx.fire_time, ctx.tz)
        for _ in range(MAX_SEARCH_STEPS):
            candidate = time_windows.next_allowed_time(candidate, prefs, ctx.tz, horizon)
            if candidate is None:
                break
            pending = ctx.pending_sends if local_day_bounds(candidate, ctx.tz) == fire_day else 0
            if self._cap_reached(ctx.user_id, prefs, candidate, ctx.tz, pending):
                candidate = time_windows.next_day_start(
                    candidate, prefs.working_hours_start, ctx.tz
                )
                continue
            return candidate

        logger.warning(
            f"No delivery slot within {SEARCH_HORIZON.days} days for user {ctx.user_id}"
        )
        return None

    def record_suppression(
        self,
        user_id: int,
        reminder_id: int,
        fire_time: datetime,
        decision: SuppressionDecision,
    ) -> bool:
        """Log a suppression once per (reminder, intended fire time, reason).

        Returns:
            True if a new event was written
        """
        for event in query_events(
            self.db,
            user_id,
            event_types=[EventType.REMINDER_SUPPRESSED],
            reminder_id=reminder_id,
            limit=None,
        ):
            data = event.event_data or {}
            logged_time = data.get("intended_fire_time")
            if (
                data.get("reason") == decision.reason
                and logged_time
                and datetime.fromisoformat(logged_time) == fire_time
            ):
                logger.debug(f"Suppression of reminder {reminder_id} already logged")
                return False

        log_event(
            self.db,
            user_id,
            EventType.REMINDER_SUPPRESSED,
            {
                "reason": decision.reason,
                "intended_fire_time": fire_time,
                "next_attempt_time": decision.next_attempt_time,
            },
            source=EventSource.SCHEDULER,
            reminder_id=reminder_id,
        )
        return True
