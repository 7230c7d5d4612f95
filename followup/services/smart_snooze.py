"""Smart snooze recommender.

Suggests a snooze duration from the user's own history. Tiers run from most
to least specific and the first tier with enough data wins. Also offers
scored snooze-until times that respect the user's schedule.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy.orm import Session

from followup.clock import get_tz, local_to_utc, to_local, to_naive_utc, utcnow
from followup.models.event import EventSource, EventType
from followup.models.snooze_history import SnoozeHistory, SnoozeReason
from followup.models.user import User
from followup.schemas.preferences import SnoozePreferencesData
from followup.schemas.snooze import (
    SnoozeCandidate,
    SnoozeCandidateType,
    SnoozeRecommendation,
    SnoozeSuggestion,
)
from followup.services import time_windows
from followup.services.events import log_event
from followup.services.preferences import PreferenceStore
from followup.services.suppression import SEARCH_HORIZON, SuppressionEngine

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 10
MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 120
HISTORY_LIMIT = 50
RECENT_DAYS = 30
HOUR_TOLERANCE = 2
PATTERN_BUCKET_HOURS = 4
PATTERN_SAMPLE_LIMIT = 20

CANDIDATE_LIMIT = 5
CANDIDATE_HISTORY_LIMIT = 20
PICK_A_TIME_SCORE = 50
LATER_TODAY_OFFSET = timedelta(hours=2)
MORNING_OFFSET = timedelta(minutes=15)
ENGAGEMENT_SIGNAL = "email_opened"
ENGAGEMENT_WINDOW = timedelta(hours=24)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_duration(minutes: float) -> int:
    """Round, clamp to [5, 120] and snap to the nearest multiple of 5."""
    duration = round_half_up(minutes)
    duration = max(MIN_DURATION_MINUTES, min(MAX_DURATION_MINUTES, duration))
    return round_half_up(duration / 5) * 5


def hour_distance(a: int, b: int) -> int:
    """Distance between two hours on a 24-hour clock."""
    diff = abs(a - b) % 24
    return min(diff, 24 - diff)


def format_label(prefix: str, local: datetime) -> str:
    """E.g. ``Tomorrow at 9:15am``."""
    hour = local.hour % 12 or 12
    suffix = "pm" if local.hour >= 12 else "am"
    return f"{prefix} at {hour}:{local.minute:02d}{suffix}"


def first_allowed_day(prefs: SnoozePreferencesData, start: date) -> date:
    for offset in range(7):
        day = start + timedelta(days=offset)
        if time_windows.is_allowed_day(prefs, datetime.combine(day, time())):
            return day
    return start


def pick_a_time() -> SnoozeCandidate:
    return SnoozeCandidate(
        type=SnoozeCandidateType.PICK_A_TIME, label="Pick a time", score=PICK_A_TIME_SCORE
    )


@dataclass
class SnoozeContext:
    hour: int
    weekday: int
    history: list[SnoozeHistory]
    recent: list[SnoozeHistory]


@dataclass(frozen=True)
class SnoozeTier:
    name: str
    confidence: float
    reason: str
    # Returns the samples this tier averages, or None when it does not apply
    samples: Callable[[SnoozeContext], list[int] | None]


def _same_weekday(ctx: SnoozeContext) -> list[int] | None:
    matches = [e.duration_minutes for e in ctx.recent if e.day_of_week == ctx.weekday]
    return matches if len(matches) > 2 else None


def _same_time_of_day(ctx: SnoozeContext) -> list[int] | None:
    matches = [
        e.duration_minutes
        for e in ctx.recent
        if hour_distance(e.time_of_day, ctx.hour) <= HOUR_TOLERANCE
    ]
    return matches or None


def _recent_average(ctx: SnoozeContext) -> list[int] | None:
    return [e.duration_minutes for e in ctx.recent] or None


def _stale_history(ctx: SnoozeContext) -> list[int] | None:
    return [DEFAULT_DURATION_MINUTES] if ctx.history else None


def _no_history(ctx: SnoozeContext) -> list[int] | None:
    return [DEFAULT_DURATION_MINUTES]


SNOOZE_TIERS = [
    SnoozeTier(
        "day_of_week", 0.8, "You usually snooze this long on this weekday", _same_weekday
    ),
    SnoozeTier(
        "time_of_day", 0.7, "You usually snooze this long around this time", _same_time_of_day
    ),
    SnoozeTier("recent_average", 0.5, "Based on your recent snoozes", _recent_average),
    SnoozeTier("sparse_history", 0.3, "Not enough recent snoozes yet", _stale_history),
    SnoozeTier("default", 0.3, "Default snooze duration", _no_history),
]


class SmartSnoozeService:
    """Recommends snooze durations and records actual snoozes."""

    def __init__(self, db: Session, preferences: PreferenceStore | None = None):
        self.db = db
        self.preferences = preferences or PreferenceStore(db)

    def _user_tz(self, user_id: int):
        user = self.db.get(User, user_id)
        return get_tz(user.timezone if user else None)

    def suggest(
        self,
        user_id: int,
        reminder_id: int | None = None,
        context: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> SnoozeSuggestion | None:
        """Suggest a snooze duration, or None when suggestions are turned off."""
        prefs = self.preferences.get_snooze_preferences(user_id)
        if not prefs.smart_suggestions_enabled:
            return None

        now = to_naive_utc(now) if now else utcnow()
        local = to_local(now, self._user_tz(user_id))

        history = (
            self.db.query(SnoozeHistory)
            .filter(SnoozeHistory.user_id == user_id)
            .order_by(SnoozeHistory.created_at.desc(), SnoozeHistory.id.desc())
            .limit(HISTORY_LIMIT)
            .all()
        )
        cutoff = now - timedelta(days=RECENT_DAYS)
        ctx = SnoozeContext(
            hour=local.hour,
            weekday=local.weekday(),
            history=history,
            recent=[e for e in history if e.created_at >= cutoff],
        )

        for tier in SNOOZE_TIERS:
            samples = tier.samples(ctx)
            if samples:
                duration = normalize_duration(sum(samples) / len(samples))
                logger.debug(
                    f"Snooze suggestion for user {user_id} (reminder {reminder_id}): "
                    f"{duration}m via {tier.name}"
                )
                return SnoozeSuggestion(
                    duration_minutes=duration,
                    confidence=tier.confidence,
                    reason=tier.reason,
                    based_on=tier.name,
                )
        return None

    def recommend(
        self,
        user_id: int,
        reminder_id: int | None = None,
        context_type: str | None = None,
        now: datetime | None = None,
    ) -> SnoozeRecommendation:
        """Offer concrete snooze times, best first, and log ``snooze_suggested``.

        Each candidate is moved into the user's allowed schedule and scored
        from 0 to 100 on schedule fit, closeness to the user's usual snooze
        length, engagement context, the daily cap and whether it had to move.
        The best candidate is recommended unless smart suggestions are off.
        A manual "pick a time" option is always offered.
        """
        now = to_naive_utc(now) if now else utcnow()
        tz = self._user_tz(user_id)
        prefs = self.preferences.get_snooze_preferences(user_id)

        candidates = self._candidates(prefs, tz, now)
        durations = [
            entry.duration_minutes
            for entry in self.db.query(SnoozeHistory)
            .filter(SnoozeHistory.user_id == user_id)
            .order_by(SnoozeHistory.created_at.desc(), SnoozeHistory.id.desc())
            .limit(CANDIDATE_HISTORY_LIMIT)
        ]
        usual = sum(durations) / len(durations) if durations else None
        suppression = SuppressionEngine(self.db, self.preferences)
        for candidate in candidates:
            if candidate.scheduled_time is None:
                continue
            fired = suppression.fired_on_day(user_id, candidate.scheduled_time, tz)
            candidate.score = self._score(candidate, prefs, tz, now, usual, context_type, fired)

        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
        top = ranked[:CANDIDATE_LIMIT]
        if prefs.smart_suggestions_enabled and top[0].type != SnoozeCandidateType.PICK_A_TIME:
            top[0].recommended = True
        if not any(c.type == SnoozeCandidateType.PICK_A_TIME for c in top):
            top.append(pick_a_time())

        recommendation = SnoozeRecommendation(
            user_id=user_id,
            reminder_id=reminder_id,
            context_type=context_type or "unknown",
            candidates=top,
            recommended=next((c for c in top if c.recommended), None),
        )
        log_event(
            self.db,
            user_id,
            EventType.SNOOZE_SUGGESTED,
            {
                "reminder_id": reminder_id,
                "candidates": [
                    {"type": c.type.value, "scheduled_time": c.scheduled_time, "score": c.score}
                    for c in top
                ],
                "recommended_type": (
                    recommendation.recommended.type.value if recommendation.recommended else None
                ),
                "context_type": recommendation.context_type,
            },
            source=EventSource.APP,
            reminder_id=reminder_id,
            created_at=now,
        )
        return recommendation

    def _candidates(
        self, prefs: SnoozePreferencesData, tz, now: datetime
    ) -> list[SnoozeCandidate]:
        today = to_local(now, tz).date()
        start = prefs.working_hours_start
        days_to_monday = 7 - today.weekday()

        targets = [
            (SnoozeCandidateType.LATER_TODAY, "Today", now + LATER_TODAY_OFFSET),
            (
                SnoozeCandidateType.TOMORROW_MORNING,
                "Tomorrow",
                local_to_utc(first_allowed_day(prefs, today + timedelta(days=1)), start, tz)
                + MORNING_OFFSET,
            ),
            (
                SnoozeCandidateType.NEXT_WORKING_DAY,
                "Next working day",
                local_to_utc(first_allowed_day(prefs, today + timedelta(days=1)), start, tz),
            ),
            (
                SnoozeCandidateType.IN_3_DAYS,
                "In 3 days",
                local_to_utc(first_allowed_day(prefs, today + timedelta(days=3)), start, tz),
            ),
            (
                SnoozeCandidateType.NEXT_WEEK,
                "Next week",
                local_to_utc(today + timedelta(days=days_to_monday), start, tz),
            ),
        ]

        candidates = []
        for kind, prefix, target in targets:
            scheduled = time_windows.next_allowed_time(target, prefs, tz, now + SEARCH_HORIZON)
            if scheduled is None:
                continue
            local = to_local(scheduled, tz)
            if kind == SnoozeCandidateType.LATER_TODAY and local.date() != today:
                continue
            candidates.append(
                SnoozeCandidate(
                    type=kind,
                    label=format_label(prefix, local),
                    scheduled_time=scheduled,
                    adjusted=scheduled != target,
                )
            )
        candidates.append(pick_a_time())
        return candidates

    def _score(
        self,
        candidate: SnoozeCandidate,
        prefs: SnoozePreferencesData,
        tz,
        now: datetime,
        usual_minutes: float | None,
        context_type: str | None,
        fired_that_day: int,
    ) -> int:
        local = to_local(candidate.scheduled_time, tz)
        score = 0
        score += -50 if time_windows.outside_working_hours(prefs, local) else 30
        score += -40 if time_windows.in_quiet_hours(prefs, local) else 20
        score += -50 if time_windows.blocked_weekend(prefs, local) else 15

        lead = candidate.scheduled_time - now
        if usual_minutes:
            diff = abs(lead / timedelta(minutes=1) - usual_minutes)
            if diff < usual_minutes * 0.5:
                score += 25
            elif diff < usual_minutes:
                score += 15

        if context_type == ENGAGEMENT_SIGNAL and lead <= ENGAGEMENT_WINDOW:
            score += 15
        score += 10 if fired_that_day < prefs.max_reminders_per_day else -30
        if not candidate.adjusted:
            score += 5
        return max(0, min(100, score))

    def log_snooze(
        self,
        user_id: int,
        duration_minutes: int,
        reason: SnoozeReason | str = SnoozeReason.USER_ACTION,
        reminder_id: int | None = None,
        context: dict[str, Any] | None = None,
        now: datetime | None = None,
        commit: bool = True,
    ) -> SnoozeHistory:
        """Append a history entry and fold it into the user's rolling pattern."""
        now = to_naive_utc(now) if now else utcnow()
        local = to_local(now, self._user_tz(user_id))

        entry = SnoozeHistory(
            user_id=user_id,
            reminder_id=reminder_id,
            duration_minutes=duration_minutes,
            reason=SnoozeReason(reason).value,
            time_of_day=local.hour,
            day_of_week=local.weekday(),
            context_data=context or {},
            created_at=now,
        )
        self.db.add(entry)

        user = self.db.get(User, user_id)
        if user is not None:
            pattern = dict(user.snooze_pattern or {})
            bucket = (local.hour // PATTERN_BUCKET_HOURS) * PATTERN_BUCKET_HOURS
            for key in (f"time_{bucket}", f"day_{local.weekday()}"):
                samples = list(pattern.get(key, [])) + [duration_minutes]
                pattern[key] = samples[-PATTERN_SAMPLE_LIMIT:]
            user.snooze_pattern = pattern

        if commit:
            self.db.commit()
            self.db.refresh(entry)
        else:
            self.db.flush()

        logger.info(f"Logged {duration_minutes}m snooze for user {user_id}")
        return entry
