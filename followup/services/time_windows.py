"""Wall-clock window arithmetic for quiet hours, working hours and allowed days.

Windows are half-open ``[start, end)`` and wrap midnight when ``start > end``.
A window with ``start == end`` is empty. All checks take a datetime already
projected into the user's timezone.
"""

from datetime import datetime, time, timedelta

from followup.clock import local_to_utc, minutes_of_day, to_local
from followup.schemas.preferences import SnoozePreferencesData

SATURDAY = 5
MAX_SEARCH_STEPS = 200


def in_window(at: time, start: time, end: time) -> bool:
    """Check whether a wall-clock time falls inside ``[start, end)``."""
    current = minutes_of_day(at)
    lo = minutes_of_day(start)
    hi = minutes_of_day(end)
    if lo < hi:
        return lo <= current < hi
    if lo > hi:
        return current >= lo or current < hi
    return False


def is_weekend(local: datetime) -> bool:
    return local.weekday() >= SATURDAY


def in_quiet_hours(prefs: SnoozePreferencesData, local: datetime) -> bool:
    if not prefs.has_quiet_hours:
        return False
    return in_window(local.time(), prefs.quiet_hours_start, prefs.quiet_hours_end)


def outside_working_hours(prefs: SnoozePreferencesData, local: datetime) -> bool:
    """Outside the working time window, or a weekday that is not a working day.

    Weekends are left to :func:`blocked_weekend`.
    """
    if not in_window(local.time(), prefs.working_hours_start, prefs.working_hours_end):
        return True
    return not is_weekend(local) and local.weekday() not in prefs.working_days


def blocked_weekend(prefs: SnoozePreferencesData, local: datetime) -> bool:
    return is_weekend(local) and not prefs.allow_weekends


def is_allowed_day(prefs: SnoozePreferencesData, local: datetime) -> bool:
    if is_weekend(local):
        return prefs.allow_weekends
    return local.weekday() in prefs.working_days


def next_occurrence(after: datetime, at: time, tz) -> datetime:
    """First naive UTC instant strictly after ``after`` whose local wall clock reads ``at``."""
    local_day = to_local(after, tz).date()
    for offset in range(3):
        candidate = local_to_utc(local_day + timedelta(days=offset), at, tz)
        if candidate > after:
            return candidate
    # Unreachable for valid timezones; keep the caller moving forward
    return after + timedelta(days=1)


def next_day_start(after: datetime, at: time, tz) -> datetime:
    """``at`` on the local day following the one containing ``after``, as naive UTC."""
    local_day = to_local(after, tz).date()
    return local_to_utc(local_day + timedelta(days=1), at, tz)


def next_allowed_time(
    candidate: datetime, prefs: SnoozePreferencesData, tz, horizon: datetime
) -> datetime | None:
    """Earliest instant at or after ``candidate`` that clears quiet hours, day and
    working-hour constraints, or None past ``horizon``.
    """
    for _ in range(MAX_SEARCH_STEPS):
        if candidate > horizon:
            return None
        local = to_local(candidate, tz)

        if in_quiet_hours(prefs, local):
            candidate = next_occurrence(candidate, prefs.quiet_hours_end, tz)
            continue
        if not is_allowed_day(prefs, local):
            candidate = next_day_start(candidate, prefs.working_hours_start, tz)
            continue
        if outside_working_hours(prefs, local):
            candidate = next_occurrence(candidate, prefs.working_hours_start, tz)
            continue
        return candidate
    return None
