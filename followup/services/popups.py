"""Popup trigger and queue engine.

Events become popups through the user's trigger rules, or the built-in mapping
when the user has none. Clients pull one popup at a time. Every state change
on a popup is a single conditional UPDATE matched on the prior state, so
concurrent callers cannot both win the same transition.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from followup.clock import get_tz, local_day_bounds, to_naive_utc, utcnow
from followup.config import get_app_config, get_settings
from followup.models.contact import Contact
from followup.models.event import Event, EventSource, EventType
from followup.models.popup import Popup, PopupAction, PopupActionType, PopupRule, PopupStatus
from followup.models.reminder import Reminder
from followup.models.snooze_history import SnoozeReason
from followup.models.user import User
from followup.schemas.popup import Popup as PopupSchema
from followup.schemas.popup import PopupActionResult, PopupRuleCreate, PopupRuleUpdate
from followup.schemas.popup import RuleConditions
from followup.services import popup_templates
from followup.services.affirmations import AffirmationService
from followup.services.events import log_event
from followup.services.preferences import PreferenceStore
from followup.services.reminders import ReminderService
from followup.services.scheduling import ReminderScheduler, get_scheduler
from followup.services.streaks import StreakService

logger = logging.getLogger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 10

OPEN_STATUSES = (PopupStatus.QUEUED.value, PopupStatus.DISPLAYED.value)

REQUIRED_RULE_FIELDS = frozenset(
    {"rule_name", "template_key", "priority", "cooldown_seconds", "ttl_seconds", "enabled"}
)

ACTION_ALIASES = {"COMPLETE": PopupActionType.MARK_DONE}


def clamp_priority(priority: int | None, default: int = 5) -> int:
    if priority is None:
        priority = default
    return max(MIN_PRIORITY, min(MAX_PRIORITY, int(priority)))


def normalize_action(action_type: str) -> PopupActionType:
    """Map a client action name onto the closed action set.

    Raises:
        ValueError: unknown action
    """
    key = (action_type or "").strip().upper()
    if key in ACTION_ALIASES:
        return ACTION_ALIASES[key]
    try:
        return PopupActionType(key)
    except ValueError:
        raise ValueError(f"Unknown popup action '{action_type}'") from None


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return to_naive_utc(value)
    return to_naive_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


@dataclass
class Trigger:
    """A rule, or a built-in mapping, ready to be applied to one event."""

    rule_key: str
    template_key: str
    priority: int
    cooldown_seconds: int
    max_per_day: int | None
    ttl_seconds: int
    rule_id: int | None = None
    title: str | None = None
    message: str | None = None
    conditions: RuleConditions = field(default_factory=RuleConditions)

    def matches(self, event: Event) -> bool:
        if self.conditions.require_contact_id and event.contact_id is None:
            return False
        if self.conditions.require_reminder_id and event.reminder_id is None:
            return False
        data = event.event_data or {}
        return all(data.get(key) == value for key, value in self.conditions.match.items())


class PopupEngine:
    """Creates, serves and resolves popups."""

    def __init__(
        self,
        db: Session,
        preferences: PreferenceStore | None = None,
        affirmations: AffirmationService | None = None,
        scheduler: ReminderScheduler | None = None,
    ):
        self.db = db
        self.preferences = preferences or PreferenceStore(db)
        self.affirmations = affirmations or AffirmationService(db, self.preferences)
        self.scheduler = scheduler or get_scheduler()
        self.reminders = ReminderService(db, self.scheduler, self.preferences)
        self.streaks = StreakService(db)
        self.config = get_app_config().popups
        self.pwa_base_url = get_settings().pwa_base_url

    # Triggering

    def _triggers_for(self, event: Event) -> list[Trigger]:
        rules = (
            self.db.query(PopupRule)
            .filter(
                PopupRule.user_id == event.user_id,
                PopupRule.trigger_event_type == event.event_type,
                PopupRule.enabled.is_(True),
            )
            .order_by(PopupRule.priority.desc(), PopupRule.id)
            .all()
        )
        if not rules:
            default = popup_templates.DEFAULT_TRIGGERS.get(event.event_type)
            if default is None:
                return []
            return [
                Trigger(
                    rule_key=f"default:{event.event_type}",
                    template_key=default.template_key,
                    priority=default.priority,
                    cooldown_seconds=default.cooldown_seconds,
                    max_per_day=default.max_per_day,
                    ttl_seconds=default.ttl_seconds,
                )
            ]

        triggers = []
        for rule in rules:
            try:
                conditions = RuleConditions.model_validate(rule.conditions or {})
            except ValueError as e:
                logger.warning(f"Skipping popup rule {rule.id} with invalid conditions: {e}")
                continue
            triggers.append(
                Trigger(
                    rule_key=rule.rule_key,
                    rule_id=rule.id,
                    template_key=rule.template_key,
                    priority=rule.priority,
                    cooldown_seconds=rule.cooldown_seconds or 0,
                    max_per_day=rule.max_per_day,
                    ttl_seconds=rule.ttl_seconds or 0,
                    title=rule.title,
                    message=rule.message,
                    conditions=conditions,
                )
            )
        return triggers

    def _rate_limited(self, user_id: int, trigger: Trigger, now: datetime) -> bool:
        base = self.db.query(func.count(Popup.id)).filter(
            Popup.user_id == user_id, Popup.rule_key == trigger.rule_key
        )
        if trigger.cooldown_seconds > 0:
            since = now - timedelta(seconds=trigger.cooldown_seconds)
            if base.filter(Popup.queued_at > since).scalar():
                logger.debug(f"Trigger {trigger.rule_key} cooling down for user {user_id}")
                return True
        if trigger.max_per_day is not None:
            user = self.db.get(User, user_id)
            start, end = local_day_bounds(now, get_tz(user.timezone if user else None))
            fired_today = base.filter(Popup.queued_at >= start, Popup.queued_at < end).scalar()
            if fired_today >= trigger.max_per_day:
                logger.debug(f"Trigger {trigger.rule_key} hit its daily cap for user {user_id}")
                return True
        return False

    def handle_event(self, event: Event, now: datetime | None = None) -> list[Popup]:
        """Queue at most one popup for an event.

        Returns:
            The popups created (empty when no rule fired)
        """
        now = to_naive_utc(now) if now else utcnow()

        already = (
            self.db.query(Popup.id)
            .filter(Popup.user_id == event.user_id, Popup.source_event_id == event.id)
            .first()
        )
        if already is not None:
            return []

        for trigger in self._triggers_for(event):
            if not trigger.matches(event):
                continue
            if self._rate_limited(event.user_id, trigger, now):
                continue
            try:
                return [self._create_popup(event, trigger, now)]
            except ValueError as e:
                logger.warning(f"Trigger {trigger.rule_key} could not render: {e}")
        return []

    def feed(self, events: list[Event], now: datetime | None = None) -> list[Popup]:
        """Run events through the trigger pipeline, logging instead of raising."""
        created = []
        for event in events:
            try:
                created.extend(self.handle_event(event, now))
            except Exception as e:
                self.db.rollback()
                logger.error(f"Popup trigger failed for event {event.id}: {e}")
        return created

    def _create_popup(self, event: Event, trigger: Trigger, now: datetime) -> Popup:
        data = event.event_data or {}
        reminder = self.db.get(Reminder, event.reminder_id) if event.reminder_id else None
        contact_id = event.contact_id or (reminder.contact_id if reminder else None)

        contact_name = data.get("contact_name")
        if not contact_name and contact_id is not None:
            contact = self.db.get(Contact, contact_id)
            contact_name = contact.name if contact else None
        contact_name = contact_name or popup_templates.FALLBACK_CONTACT

        template_type, title, message = popup_templates.render(
            trigger.template_key,
            popup_templates.TemplateContext(
                event_type=event.event_type,
                event_data=data,
                contact_name=contact_name,
                event_time=event.created_at,
                now=now,
            ),
        )

        popup = Popup(
            user_id=event.user_id,
            reminder_id=event.reminder_id,
            contact_id=contact_id,
            rule_id=trigger.rule_id,
            rule_key=trigger.rule_key,
            source_event_id=event.id,
            template_type=template_type,
            template_key=trigger.template_key,
            title=trigger.title or title,
            message=trigger.message or message,
            priority=clamp_priority(trigger.priority, self.config.get("default_priority", 5)),
            status=PopupStatus.QUEUED.value,
            queued_at=now,
            expires_at=now + timedelta(seconds=trigger.ttl_seconds)
            if trigger.ttl_seconds > 0
            else None,
            payload={
                "template_key": trigger.template_key,
                "source_event_id": event.id,
                "source_event_type": event.event_type,
                "contact_id": contact_id,
                "reminder_id": event.reminder_id,
                "contact_name": contact_name,
                "action_url": data.get("action_url") or data.get("thread_url"),
            },
        )
        self.db.add(popup)
        self.db.commit()
        self.db.refresh(popup)

        logger.info(
            f"Queued popup {popup.id} ({trigger.template_key}, priority {popup.priority}) "
            f"for user {event.user_id} from event {event.id}"
        )
        return popup

    # Queue

    def expire_popups(self, user_id: int | None = None, now: datetime | None = None) -> int:
        """Mark queued popups past their expiry as expired."""
        now = to_naive_utc(now) if now else utcnow()
        query = self.db.query(Popup).filter(
            Popup.status == PopupStatus.QUEUED.value,
            Popup.expires_at.is_not(None),
            Popup.expires_at <= now,
        )
        if user_id is not None:
            query = query.filter(Popup.user_id == user_id)
        expired = query.update(
            {"status": PopupStatus.EXPIRED.value, "closed_at": now}, synchronize_session=False
        )
        self.db.commit()
        if expired:
            logger.info(f"Expired {expired} popups")
        return expired

    def get_next_popup(
        self, user_id: int, now: datetime | None = None
    ) -> tuple[Popup | None, bool]:
        """Claim the highest-priority eligible popup.

        Returns:
            (popup, did_transition). The popup is None when nothing was
            eligible or every candidate was claimed by a concurrent caller.
        """
        now = to_naive_utc(now) if now else utcnow()
        self.expire_popups(user_id=user_id, now=now)

        eligible = or_(
            and_(
                Popup.status == PopupStatus.QUEUED.value,
                or_(Popup.snooze_until.is_(None), Popup.snooze_until <= now),
            ),
            and_(
                Popup.status == PopupStatus.DISPLAYED.value,
                Popup.snooze_until.is_not(None),
                Popup.snooze_until <= now,
            ),
        )
        candidates = (
            self.db.query(Popup)
            .filter(
                Popup.user_id == user_id,
                eligible,
                or_(Popup.expires_at.is_(None), Popup.expires_at > now),
            )
            .order_by(Popup.priority.desc(), Popup.queued_at, Popup.id)
            .limit(self.config.get("claim_attempts", 3))
            .all()
        )

        for popup in candidates:
            if self._claim(popup, now):
                self.db.refresh(popup)
                self._on_shown(popup, now)
                return popup, True
            logger.info(f"Popup {popup.id} was claimed by another caller")
        return None, False

    def _claim(self, popup: Popup, now: datetime) -> bool:
        query = self.db.query(Popup).filter(Popup.id == popup.id, Popup.status == popup.status)
        if popup.snooze_until is None:
            query = query.filter(Popup.snooze_until.is_(None))
        else:
            query = query.filter(Popup.snooze_until == popup.snooze_until)
        won = query.update(
            {
                "status": PopupStatus.DISPLAYED.value,
                "displayed_at": now,
                "snooze_until": None,
            },
            synchronize_session=False,
        )
        self.db.commit()
        return won == 1

    def _on_shown(self, popup: Popup, now: datetime) -> None:
        log_event(
            self.db,
            popup.user_id,
            EventType.POPUP_SHOWN,
            {
                "popup_id": popup.id,
                "rule_key": popup.rule_key,
                "template_key": popup.template_key,
                "source_event_id": popup.source_event_id,
            },
            source=EventSource.APP,
            contact_id=popup.contact_id,
            reminder_id=popup.reminder_id,
            created_at=now,
        )
        if popup.affirmation:
            return
        context = (popup.payload or {}).get("source_event_type")
        selection = self.affirmations.select(popup.user_id, context, popup.id, now)
        if selection is not None:
            popup.affirmation = selection.text
            self.db.commit()
            self.db.refresh(popup)

    def snooze_popup(
        self, popup_id: int, minutes: int, now: datetime | None = None
    ) -> Popup | None:
        """Defer an open popup in place. Its status does not change.

        Raises:
            ValueError: the popup is already closed
        """
        now = to_naive_utc(now) if now else utcnow()
        popup = self.db.get(Popup, popup_id)
        if popup is None:
            return None

        until = now + timedelta(minutes=minutes)
        updated = (
            self.db.query(Popup)
            .filter(Popup.id == popup_id, Popup.status.in_(OPEN_STATUSES))
            .update({"snooze_until": until}, synchronize_session=False)
        )
        if not updated:
            self.db.rollback()
            raise ValueError(f"Popup {popup_id} is already closed")

        self.db.add(
            PopupAction(
                popup_id=popup_id,
                user_id=popup.user_id,
                action_type=PopupActionType.SNOOZE.value,
                action_data={"minutes": minutes, "in_place": True},
                created_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(popup)
        logger.info(f"Popup {popup_id} deferred until {until}")
        return popup

    # Actions

    def _resolve_snooze_until(
        self, popup: Popup, reminder: Reminder | None, data: dict[str, Any], now: datetime
    ) -> tuple[datetime, SnoozeReason]:
        """Explicit instant, then explicit minutes, then the computed default."""
        if data.get("snooze_until"):
            return _parse_datetime(data["snooze_until"]), SnoozeReason.USER_ACTION

        minutes = data.get("minutes", data.get("snooze_minutes"))
        if minutes is not None:
            minutes = int(minutes)
            if minutes <= 0:
                raise ValueError("Snooze minutes must be positive")
            return now + timedelta(minutes=minutes), SnoozeReason.USER_ACTION

        if reminder is not None:
            minutes, reason = self.reminders.default_snooze_minutes(reminder, now)
            return now + timedelta(minutes=minutes), reason

        suggestion = self.reminders.snooze_service.suggest(popup.user_id, now=now)
        if suggestion is not None:
            minutes, reason = suggestion.duration_minutes, SnoozeReason.SMART_SUGGESTION
        else:
            minutes, reason = self.config.get("default_snooze_minutes", 10), SnoozeReason.AUTO
        return now + timedelta(minutes=minutes), reason

    def apply_action(
        self,
        popup_id: int,
        action_type: str,
        action_data: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> PopupActionResult | None:
        """Resolve a user action on a popup.

        The action is always recorded against the popup. Effects on the
        linked reminder are skipped when it no longer exists.

        Returns:
            PopupActionResult, or None if the popup does not exist

        Raises:
            ValueError: unknown action, bad snooze data, or a closed popup
        """
        now = to_naive_utc(now) if now else utcnow()
        data = dict(action_data or {})
        action = normalize_action(action_type)

        popup = self.db.get(Popup, popup_id)
        if popup is None:
            return None
        reminder = self.db.get(Reminder, popup.reminder_id) if popup.reminder_id else None
        if popup.reminder_id and reminder is None:
            logger.warning(f"Popup {popup_id} refers to missing reminder {popup.reminder_id}")

        snooze_until = None
        snooze_reason = None
        if action == PopupActionType.SNOOZE:
            snooze_until, snooze_reason = self._resolve_snooze_until(popup, reminder, data, now)

        closed = (
            self.db.query(Popup)
            .filter(Popup.id == popup_id, Popup.status.in_(OPEN_STATUSES))
            .update(
                {
                    "status": PopupStatus.ACTED.value,
                    "closed_at": now,
                    "action_taken": action.value,
                    "snooze_until": snooze_until,
                },
                synchronize_session=False,
            )
        )
        if not closed:
            self.db.rollback()
            raise ValueError(f"Popup {popup_id} is already closed")

        self.db.add(
            PopupAction(
                popup_id=popup_id,
                user_id=popup.user_id,
                action_type=action.value,
                action_data=jsonable_encoder(data),
                created_at=now,
            )
        )
        log_event(
            self.db,
            popup.user_id,
            EventType.POPUP_ACTION,
            {"popup_id": popup_id, "action_type": action.value, "rule_key": popup.rule_key},
            source=EventSource.CLIENT,
            contact_id=popup.contact_id,
            reminder_id=popup.reminder_id,
            created_at=now,
            commit=False,
        )

        completed = None
        rescheduled = False
        action_url = None
        if action == PopupActionType.MARK_DONE and reminder is not None:
            completed = self.reminders.complete(reminder, now, commit=False)
        elif action == PopupActionType.SNOOZE and reminder is not None:
            rescheduled = self.reminders.snooze(
                reminder, snooze_until, snooze_reason, now, commit=False
            )
        elif action == PopupActionType.FOLLOW_UP_NOW:
            action_url = (popup.payload or {}).get("action_url") or self._reminder_url(
                popup.reminder_id
            )

        self.db.commit()
        self.db.refresh(popup)
        logger.info(f"Applied {action.value} to popup {popup_id}")

        if rescheduled:
            self.reminders.schedule(reminder.id, snooze_until)
        if completed is not None:
            self.after_completion(completed, now)

        return PopupActionResult(
            popup=PopupSchema.model_validate(popup),
            action_type=action.value,
            action_url=action_url,
            snooze_until=snooze_until,
            reminder_id=popup.reminder_id,
        )

    def _reminder_url(self, reminder_id: int | None) -> str:
        if reminder_id is None:
            return f"{self.pwa_base_url}/reminders"
        return f"{self.pwa_base_url}/reminders/{reminder_id}"

    def after_completion(self, completed: Event, now: datetime | None = None) -> list[Popup]:
        """Update streaks and run the completion through the trigger pipeline."""
        events = [completed]
        try:
            events.extend(self.streaks.update_on_completion(completed.user_id, now))
        except Exception as e:
            self.db.rollback()
            logger.error(f"Streak update failed for user {completed.user_id}: {e}")
        return self.feed(events, now)

    # Rules

    def list_rules(self, user_id: int) -> list[PopupRule]:
        return (
            self.db.query(PopupRule)
            .filter(PopupRule.user_id == user_id)
            .order_by(PopupRule.trigger_event_type, PopupRule.priority.desc(), PopupRule.id)
            .all()
        )

    def create_rule(self, rule_in: PopupRuleCreate) -> PopupRule:
        if rule_in.template_key not in popup_templates.TEMPLATES:
            raise ValueError(f"Unknown popup template '{rule_in.template_key}'")
        values = rule_in.model_dump()
        values["trigger_event_type"] = rule_in.trigger_event_type.value
        rule = PopupRule(**values)
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        logger.info(f"Created popup rule {rule.id} for user {rule.user_id}")
        return rule

    def update_rule(self, rule_id: int, rule_in: PopupRuleUpdate) -> PopupRule | None:
        rule = self.db.get(PopupRule, rule_id)
        if rule is None:
            return None
        updates = rule_in.model_dump(exclude_unset=True)
        template_key = updates.get("template_key")
        if template_key is not None and template_key not in popup_templates.TEMPLATES:
            raise ValueError(f"Unknown popup template '{template_key}'")
        if "conditions" in updates and updates["conditions"] is None:
            updates["conditions"] = {}
        # Explicit nulls on required columns mean "leave as is"
        updates = {
            key: value
            for key, value in updates.items()
            if value is not None or key not in REQUIRED_RULE_FIELDS
        }
        for field_name, value in updates.items():
            setattr(rule, field_name, value)
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def delete_rule(self, rule_id: int) -> bool:
        rule = self.db.get(PopupRule, rule_id)
        if rule is None:
            return False
        self.db.delete(rule)
        self.db.commit()
        return True
