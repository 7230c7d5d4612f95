"""Time helpers.

Timestamps are stored as naive UTC. These helpers convert between stored
values and a user's local wall clock.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytz


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_tz(name: str | None):
    """Resolve an IANA timezone name, falling back to UTC."""
    if not name:
        return pytz.UTC
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def to_local(value: datetime, tz) -> datetime:
    """Project a naive UTC datetime into the given timezone."""
    return pytz.UTC.localize(to_naive_utc(value)).astimezone(tz)


def local_to_utc(day: date, at: time, tz) -> datetime:
    """Build a naive UTC datetime from a local date and wall-clock time."""
    local = tz.normalize(tz.localize(datetime.combine(day, at.replace(tzinfo=None))))
    return local.astimezone(pytz.UTC).replace(tzinfo=None)


def local_day_bounds(value: datetime, tz) -> tuple[datetime, datetime]:
    """Return the naive UTC [start, end) of the local day containing value."""
    local_day = to_local(value, tz).date()
    start = local_to_utc(local_day, time(0, 0), tz)
    end = local_to_utc(local_day + timedelta(days=1), time(0, 0), tz)
    return start, end


def minutes_of_day(at: time) -> int:
    return at.hour * 60 + at.minute
