"""Per-reminder audit trail built from the event log."""

from datetime import datetime

from sqlalchemy.orm import Session

from followup.models.event import Event, EventType
from followup.models.reminder import Reminder
from followup.schemas.reminder import AuditEntry, ReminderAudit, SuppressionDetail
from followup.services.events import query_events
from followup.services.suppression import REASON_MESSAGES, RULE_NAMES, SuppressionReason

TIMELINE_LIMIT = 50

TIMELINE_LABELS = {
    EventType.REMINDER_CREATED: ("Created", "Reminder was created"),
    EventType.REMINDER_SENT: ("Triggered", "Reminder was sent"),
    EventType.REMINDER_FAILED: ("Failed", "Reminder could not be delivered"),
    EventType.REMINDER_SNOOZED: ("Snoozed", "Reminder was snoozed"),
    EventType.REMINDER_SUPPRESSED: ("Suppressed", "Reminder was held back"),
    EventType.REMINDER_COMPLETED: ("Completed", "Reminder was completed"),
    EventType.REMINDER_DISMISSED: ("Dismissed", "Reminder was dismissed"),
    EventType.REMINDER_OVERDUE: ("Overdue", "Reminder became overdue"),
}


def _parse_time(value) -> datetime | None:
    return datetime.fromisoformat(value) if isinstance(value, str) else value


def suppression_detail(event: Event) -> SuppressionDetail:
    data = event.event_data or {}
    try:
        reason = SuppressionReason(data.get("reason") or SuppressionReason.OTHER.value)
    except ValueError:
        reason = SuppressionReason.OTHER
    return SuppressionDetail(
        reason_code=reason.value,
        reason_human=REASON_MESSAGES[reason],
        rule_name=RULE_NAMES[reason],
        intended_fire_time=_parse_time(data.get("intended_fire_time")),
        next_attempt_time=_parse_time(data.get("next_attempt_time")),
        evaluated_at=event.created_at,
    )


def reminder_audit(db: Session, reminder: Reminder, limit: int = TIMELINE_LIMIT) -> ReminderAudit:
    """Lifecycle events of a reminder with labels and suppression explanations."""
    events = query_events(
        db,
        reminder.user_id,
        event_types=list(TIMELINE_LABELS),
        reminder_id=reminder.id,
        limit=limit,
    )

    timeline = []
    for event in events:
        label, description = TIMELINE_LABELS[EventType(event.event_type)]
        detail = None
        if event.event_type == EventType.REMINDER_SUPPRESSED.value:
            detail = suppression_detail(event)
            description = detail.reason_human
        timeline.append(
            AuditEntry(
                event_id=event.id,
                event_type=event.event_type,
                label=label,
                description=description,
                created_at=event.created_at,
                source=event.source,
                event_data=event.event_data or {},
                suppression=detail,
            )
        )

    return ReminderAudit(
        reminder_id=reminder.id,
        status=reminder.status,
        scheduled_time=reminder.scheduled_time,
        last_suppression=next((e.suppression for e in timeline if e.suppression), None),
        timeline=timeline,
    )
