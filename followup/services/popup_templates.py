"""Popup templates and the built-in event-to-popup mapping."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from followup.models.event import EventType

FALLBACK_CONTACT = "this contact"
PREVIEW_LENGTH = 50


@dataclass(frozen=True)
class TemplateContext:
    event_type: str
    event_data: dict[str, Any]
    contact_name: str
    event_time: datetime
    now: datetime


@dataclass(frozen=True)
class PopupTemplate:
    template_type: str
    title: str
    render: Callable[[TemplateContext], str]


@dataclass(frozen=True)
class DefaultTrigger:
    """Rule parameters used when a user has no rule for an event type."""

    template_key: str
    priority: int
    cooldown_seconds: int = 0
    max_per_day: int | None = None
    ttl_seconds: int = 86400


def time_ago(then: datetime, now: datetime) -> str:
    minutes = int((now - then).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    if minutes < 1440:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = minutes // 1440
    return f"{days} day{'s' if days != 1 else ''} ago"


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def _completed(ctx: TemplateContext) -> str:
    message = str(ctx.event_data.get("message") or "")
    if ctx.contact_name != FALLBACK_CONTACT:
        text = f"You followed up with {ctx.contact_name}. Keep up the momentum!"
    else:
        text = "You completed your reminder. Keep up the momentum!"
    return f'{text} "{_preview(message)}"' if message else text


def _no_reply(ctx: TemplateContext) -> str:
    days = ctx.event_data.get("days")
    suffix = f" after {days} days" if isinstance(days, int) and days else ""
    return f"No reply yet from {ctx.contact_name}{suffix}. Want to follow up?"


def _overdue(ctx: TemplateContext) -> str:
    message = str(ctx.event_data.get("message") or "")
    if message:
        return f'You missed a reminder: "{_preview(message)}". Reschedule or do it now.'
    return "You missed a reminder. Reschedule or do it now."


TEMPLATES: dict[str, PopupTemplate] = {
    "success": PopupTemplate("success", "Great job!", _completed),
    "streak": PopupTemplate(
        "streak",
        "Streak Achieved!",
        lambda ctx: f"You've maintained a {ctx.event_data.get('streak_days', 0)} day streak!",
    ),
    "inactivity": PopupTemplate(
        "inactivity",
        "Time to get back on track",
        lambda ctx: "You haven't been active lately. Let's create a reminder!",
    ),
    "follow_up_required": PopupTemplate(
        "follow_up_required",
        "Follow-up needed",
        lambda ctx: "You have reminders that need attention.",
    ),
    "missed": PopupTemplate("missed", "Reminder missed", _overdue),
    "email_opened": PopupTemplate(
        "email_opened",
        "Email opened",
        lambda ctx: (
            f"Your email to {ctx.contact_name} was opened {time_ago(ctx.event_time, ctx.now)}."
        ),
    ),
    "reminder_due": PopupTemplate(
        "reminder_due",
        "Follow-up due",
        lambda ctx: (
            str(ctx.event_data.get("message"))
            if ctx.event_data.get("message")
            else f"Follow-up due: {ctx.contact_name}."
        ),
    ),
    "no_reply": PopupTemplate("no_reply", "No reply yet", _no_reply),
}

DEFAULT_TRIGGERS: dict[str, DefaultTrigger] = {
    EventType.REMINDER_COMPLETED.value: DefaultTrigger("success", 7, cooldown_seconds=300),
    EventType.STREAK_ACHIEVED.value: DefaultTrigger("streak", 9),
    EventType.INACTIVITY_DETECTED.value: DefaultTrigger("inactivity", 6),
    EventType.FOLLOW_UP_REQUIRED.value: DefaultTrigger("follow_up_required", 8),
    EventType.REMINDER_OVERDUE.value: DefaultTrigger("missed", 7),
    EventType.EMAIL_OPENED.value: DefaultTrigger(
        "email_opened", 9, cooldown_seconds=1800, max_per_day=6
    ),
    EventType.NO_REPLY_AFTER_N_DAYS.value: DefaultTrigger(
        "no_reply", 7, cooldown_seconds=43200, max_per_day=6
    ),
    EventType.REMINDER_DUE.value: DefaultTrigger("reminder_due", 8),
}


def render(template_key: str, ctx: TemplateContext) -> tuple[str, str, str]:
    """Render a template.

    Returns:
        (template_type, title, message)

    Raises:
        ValueError: unknown template key
    """
    template = TEMPLATES.get(template_key)
    if template is None:
        raise ValueError(f"Unknown popup template '{template_key}'")
    return template.template_type, template.title, template.render(ctx)
