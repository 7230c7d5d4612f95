"""Append-only event log.

Events are the single source of truth for behaviour: suppressions, sends,
completions, popup lifecycle and affirmations are all recorded here and
consumed by the popup trigger engine and the sweeps.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from followup.clock import utcnow
from followup.models.event import Event, EventSource, EventType
from followup.schemas.event import validate_event_data

logger = logging.getLogger(__name__)


def _value(item: Any) -> Any:
    return item.value if hasattr(item, "value") else item


def log_event(
    db: Session,
    user_id: int,
    event_type: EventType | str,
    event_data: dict[str, Any] | None = None,
    *,
    source: EventSource | str = EventSource.APP,
    contact_id: int | None = None,
    reminder_id: int | None = None,
    created_at: datetime | None = None,
    commit: bool = True,
) -> Event:
    """Validate and append one event.

    With ``commit=False`` the event is only flushed so the caller can commit it
    together with other writes.

    Raises:
        ValueError: if the payload does not fit the event type
    """
    event_type = _value(event_type)
    data = validate_event_data(event_type, event_data)
    if reminder_id is None:
        reminder_id = data.get("reminder_id")

    event = Event(
        user_id=user_id,
        event_type=event_type,
        event_data=data,
        source=_value(source),
        contact_id=contact_id,
        reminder_id=reminder_id,
        created_at=created_at or utcnow(),
    )
    db.add(event)
    if commit:
        db.commit()
        db.refresh(event)
    else:
        db.flush()

    logger.debug(f"Logged event {event_type} for user {user_id} (event {event.id})")
    return event


def query_events(
    db: Session,
    user_id: int,
    event_types: Iterable[EventType | str] | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    reminder_id: int | None = None,
    limit: int | None = 100,
) -> list[Event]:
    """Return a user's events, newest first."""
    query = db.query(Event).filter(Event.user_id == user_id)
    if event_types:
        query = query.filter(Event.event_type.in_([_value(t) for t in event_types]))
    if since is not None:
        query = query.filter(Event.created_at >= since)
    if until is not None:
        query = query.filter(Event.created_at < until)
    if reminder_id is not None:
        query = query.filter(Event.reminder_id == reminder_id)

    query = query.order_by(Event.created_at.desc(), Event.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def has_event(
    db: Session,
    user_id: int,
    event_type: EventType | str,
    reminder_id: int | None = None,
    since: datetime | None = None,
) -> bool:
    """Check whether a matching event already exists."""
    query = db.query(Event.id).filter(
        Event.user_id == user_id, Event.event_type == _value(event_type)
    )
    if reminder_id is not None:
        query = query.filter(Event.reminder_id == reminder_id)
    if since is not None:
        query = query.filter(Event.created_at >= since)
    return query.first() is not None


def last_event_at(
    db: Session, user_id: int, event_types: Iterable[EventType | str] | None = None
) -> datetime | None:
    """Timestamp of the user's most recent event, optionally of given types."""
    events = query_events(db, user_id, event_types=event_types, limit=1)
    return events[0].created_at if events else None
