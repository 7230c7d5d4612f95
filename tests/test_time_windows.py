"""Tests for wall-clock window arithmetic."""

from datetime import datetime, time, timedelta

import pytz

from followup.schemas.preferences import SnoozePreferencesData
from followup.services import time_windows


def prefs(**overrides) -> SnoozePreferencesData:
    values = {
        "user_id": 1,
        "working_hours_start": time(9, 0),
        "working_hours_end": time(17, 30),
        "working_days": [0, 1, 2, 3, 4],
    }
    values.update(overrides)
    return SnoozePreferencesData(**values)


class TestInWindow:
    def test_plain_window_is_half_open(self):
        assert time_windows.in_window(time(9, 0), time(9, 0), time(17, 0))
        assert time_windows.in_window(time(16, 59), time(9, 0), time(17, 0))
        assert not time_windows.in_window(time(17, 0), time(9, 0), time(17, 0))

    def test_window_wrapping_midnight(self):
        assert time_windows.in_window(time(23, 30), time(22, 0), time(7, 0))
        assert time_windows.in_window(time(2, 0), time(22, 0), time(7, 0))
        assert not time_windows.in_window(time(7, 0), time(22, 0), time(7, 0))
        assert not time_windows.in_window(time(12, 0), time(22, 0), time(7, 0))

    def test_equal_bounds_is_empty(self):
        assert not time_windows.in_window(time(9, 0), time(9, 0), time(9, 0))


class TestPreferenceWindows:
    def test_quiet_hours_need_both_bounds(self):
        local = datetime(2026, 10, 19, 23, 0)
        assert not time_windows.in_quiet_hours(prefs(quiet_hours_start=time(22, 0)), local)
        assert time_windows.in_quiet_hours(
            prefs(quiet_hours_start=time(22, 0), quiet_hours_end=time(7, 0)), local
        )

    def test_non_working_weekday(self):
        # 2026-10-21 is a Wednesday
        local = datetime(2026, 10, 21, 10, 0)
        assert time_windows.outside_working_hours(prefs(working_days=[0, 1]), local)
        assert not time_windows.outside_working_hours(prefs(), local)

    def test_weekend_blocked_unless_allowed(self):
        saturday = datetime(2026, 10, 24, 10, 0)
        assert time_windows.blocked_weekend(prefs(), saturday)
        assert not time_windows.blocked_weekend(prefs(allow_weekends=True), saturday)
        assert time_windows.is_allowed_day(prefs(allow_weekends=True), saturday)


class TestNextOccurrence:
    def test_is_strictly_after(self):
        after = datetime(2026, 10, 19, 9, 0)
        assert time_windows.next_occurrence(after, time(9, 0), pytz.UTC) == datetime(
            2026, 10, 20, 9, 0
        )

    def test_projects_local_time_to_utc(self):
        tz = pytz.timezone("America/New_York")
        after = datetime(2026, 10, 19, 3, 0)  # 23:00 the previous evening in New York
        # 07:00 EDT on 2026-10-19 is 11:00 UTC
        assert time_windows.next_occurrence(after, time(7, 0), tz) == datetime(
            2026, 10, 19, 11, 0
        )

    def test_next_day_start(self):
        after = datetime(2026, 10, 19, 15, 0)
        assert time_windows.next_day_start(after, time(9, 0), pytz.UTC) == datetime(
            2026, 10, 20, 9, 0
        )


class TestNextAllowedTime:
    def test_allowed_instant_is_kept(self):
        at = datetime(2026, 10, 19, 10, 0)
        assert time_windows.next_allowed_time(at, prefs(), pytz.UTC, at + timedelta(days=1)) == at

    def test_friday_evening_moves_to_monday(self):
        friday = datetime(2026, 10, 23, 18, 0)
        result = time_windows.next_allowed_time(
            friday, prefs(), pytz.UTC, friday + timedelta(days=14)
        )
        assert result == datetime(2026, 10, 26, 9, 0)

    def test_quiet_hours_inside_working_hours(self):
        at = datetime(2026, 10, 19, 12, 15)
        quiet = prefs(quiet_hours_start=time(12, 0), quiet_hours_end=time(13, 0))
        result = time_windows.next_allowed_time(at, quiet, pytz.UTC, at + timedelta(days=1))
        assert result == datetime(2026, 10, 19, 13, 0)

    def test_past_horizon(self):
        friday = datetime(2026, 10, 23, 18, 0)
        result = time_windows.next_allowed_time(
            friday, prefs(), pytz.UTC, friday + timedelta(hours=12)
        )
        assert result is None
