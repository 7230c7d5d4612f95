"""Affirmation selection engine.

Picks a short, context-appropriate affirmation for a popup while honouring the
user's switches, a global cooldown, a daily cap and recent-repeat exclusion.
Affirmations are enrichment: any failure yields None instead of an error.
"""

import logging
import random
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from followup.clock import get_tz, local_day_bounds, to_naive_utc, utcnow
from followup.models.affirmation import Affirmation, AffirmationCategory, AffirmationUsage
from followup.models.event import EventSource, EventType
from followup.models.user import User
from followup.schemas.affirmation import AffirmationSelection
from followup.schemas.preferences import AffirmationPreferencesData
from followup.services.events import log_event
from followup.services.preferences import PreferenceStore

logger = logging.getLogger(__name__)

RECENT_EXCLUSION = 10

C = AffirmationCategory

TONE_CATEGORIES = {
    "sales": [C.SALES_MOMENTUM, C.FOCUS, C.CONSISTENCY],
    "calm": [C.CALM_PRODUCTIVITY, C.RESILIENCE, C.GENERAL_POSITIVE],
    "mixed": list(AffirmationCategory),
}

CONTEXT_CATEGORIES = {
    "reminder_due": [C.SALES_MOMENTUM, C.FOCUS],
    "email_opened": [C.SALES_MOMENTUM, C.FOCUS],
    "follow_up_required": [C.SALES_MOMENTUM, C.FOCUS],
    "reminder_completed": [C.CONSISTENCY, C.GENERAL_POSITIVE],
    "streak_achieved": [C.CONSISTENCY, C.GENERAL_POSITIVE],
    "reminder_overdue": [C.RESILIENCE, C.CALM_PRODUCTIVITY],
    "reminder_missed": [C.RESILIENCE, C.CALM_PRODUCTIVITY],
    "inactivity_detected": [C.RESILIENCE, C.CALM_PRODUCTIVITY],
    "no_reply_after_n_days": [C.RESILIENCE, C.CONSISTENCY],
}

CATALOGUE = {
    C.SALES_MOMENTUM: [
        "You are moving the needle, one follow-up at a time.",
        "Strategic persistence beats silence. Stay proactive.",
        "Every touchpoint keeps the deal warm.",
        "Timely follow-ups build trust. This one keeps your cadence sharp.",
        "Your proactive approach creates opportunities.",
    ],
    C.CALM_PRODUCTIVITY: [
        "One step at a time is still progress.",
        "Breathe, pick the next small task, and begin.",
        "Calm focus gets more done than rushing.",
        "You do not have to do everything today. Just the next thing.",
        "Steady beats frantic.",
    ],
    C.CONSISTENCY: [
        "Consistency compounds. Keep your momentum alive.",
        "Small disciplined actions lead to big wins.",
        "Every completed reminder strengthens your habits.",
        "Reliability is built one follow-up at a time.",
        "Showing up again today is what makes it a habit.",
    ],
    C.RESILIENCE: [
        "A missed step is not a lost path. Pick it back up.",
        "Silence is not a no. Try again with a fresh angle.",
        "Setbacks are part of the process. Keep going.",
        "You can restart at any moment. Now is a good one.",
        "Progress is rarely a straight line.",
    ],
    C.FOCUS: [
        "Focus on this one follow-up. The rest can wait.",
        "Clear the noise and take the next step.",
        "One conversation at a time.",
        "Finish this before starting something new.",
        "Your attention is your advantage.",
    ],
    C.GENERAL_POSITIVE: [
        "You are capable of completing what you start.",
        "Your future self will thank you for this.",
        "You are making progress, one reminder at a time.",
        "Good work is built from small moments like this one.",
        "You have what it takes to finish this.",
    ],
}


def allowed_categories(
    prefs: AffirmationPreferencesData, context: str | None
) -> list[AffirmationCategory]:
    """Tone-filtered, enabled categories narrowed by the event context."""
    tone = TONE_CATEGORIES.get(prefs.tone_preference, TONE_CATEGORIES["mixed"])
    tone_filtered = [c for c in tone if prefs.is_category_enabled(c.value)]

    categories = [c for c in CONTEXT_CATEGORIES.get(context or "", []) if c in tone_filtered]
    if not categories:
        return tone_filtered
    if C.GENERAL_POSITIVE in tone_filtered and C.GENERAL_POSITIVE not in categories:
        categories.append(C.GENERAL_POSITIVE)
    return categories


def seed_affirmations(db: Session) -> int:
    """Load the built-in catalogue when the table is empty."""
    if db.query(Affirmation.id).first() is not None:
        return 0
    count = 0
    for category, texts in CATALOGUE.items():
        for text in texts:
            db.add(Affirmation(text=text, category=category.value, enabled=True))
            count += 1
    db.commit()
    logger.info(f"Seeded {count} affirmations")
    return count


class AffirmationService:
    """Rate-limited, context-aware affirmation selection."""

    def __init__(
        self,
        db: Session,
        preferences: PreferenceStore | None = None,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.preferences = preferences or PreferenceStore(db)
        self.rng = rng or random.Random()

    def select(
        self,
        user_id: int,
        context: str | None = None,
        popup_id: int | None = None,
        now: datetime | None = None,
    ) -> AffirmationSelection | None:
        """Select, record and return an affirmation, or None when suppressed."""
        try:
            return self._select(user_id, context, popup_id, to_naive_utc(now) if now else utcnow())
        except Exception as e:
            self.db.rollback()
            logger.error(f"Affirmation selection failed for user {user_id}: {e}")
            return None

    def _select(
        self, user_id: int, context: str | None, popup_id: int | None, now: datetime
    ) -> AffirmationSelection | None:
        prefs = self.preferences.get_affirmation_preferences(user_id)
        if not prefs.enabled:
            return self._suppress(user_id, "disabled", context, popup_id)

        if popup_id is not None:
            attached = (
                self.db.query(AffirmationUsage.id)
                .filter(AffirmationUsage.user_id == user_id, AffirmationUsage.popup_id == popup_id)
                .first()
            )
            if attached is not None:
                return self._suppress(user_id, "already_attached", context, popup_id)

        last_shown = (
            self.db.query(func.max(AffirmationUsage.shown_at))
            .filter(AffirmationUsage.user_id == user_id)
            .scalar()
        )
        cooldown = timedelta(minutes=prefs.global_cooldown_minutes)
        if last_shown is not None and now - last_shown < cooldown:
            return self._suppress(user_id, "cooldown", context, popup_id)

        user = self.db.get(User, user_id)
        start, end = local_day_bounds(now, get_tz(user.timezone if user else None))
        shown_today = (
            self.db.query(func.count(AffirmationUsage.id))
            .filter(
                AffirmationUsage.user_id == user_id,
                AffirmationUsage.shown_at >= start,
                AffirmationUsage.shown_at < end,
            )
            .scalar()
        )
        if shown_today >= prefs.daily_cap:
            return self._suppress(user_id, "daily_cap", context, popup_id)

        categories = allowed_categories(prefs, context)
        if not categories:
            return self._suppress(user_id, "category_disabled", context, popup_id)

        seed_affirmations(self.db)
        recent_ids = {
            row.affirmation_id
            for row in self.db.query(AffirmationUsage.affirmation_id)
            .filter(AffirmationUsage.user_id == user_id)
            .order_by(AffirmationUsage.shown_at.desc(), AffirmationUsage.id.desc())
            .limit(RECENT_EXCLUSION)
            .all()
        }

        ordered = list(categories)
        self.rng.shuffle(ordered)
        for category in ordered:
            pool = (
                self.db.query(Affirmation)
                .filter(Affirmation.category == category.value, Affirmation.enabled.is_(True))
                .order_by(Affirmation.id)
                .all()
            )
            if not pool:
                continue
            fresh = [a for a in pool if a.id not in recent_ids] or pool
            affirmation = self.rng.choice(fresh)
            return self._record(user_id, affirmation, context, popup_id, now)

        return self._suppress(user_id, "empty_catalogue", context, popup_id)

    def _record(
        self,
        user_id: int,
        affirmation: Affirmation,
        context: str | None,
        popup_id: int | None,
        now: datetime,
    ) -> AffirmationSelection:
        self.db.add(
            AffirmationUsage(
                user_id=user_id,
                affirmation_id=affirmation.id,
                category=affirmation.category,
                popup_id=popup_id,
                shown_at=now,
            )
        )
        log_event(
            self.db,
            user_id,
            EventType.AFFIRMATION_SHOWN,
            {
                "affirmation_id": affirmation.id,
                "category": affirmation.category,
                "popup_id": popup_id,
                "context": context,
            },
            source=EventSource.SYSTEM,
            created_at=now,
            commit=False,
        )
        self.db.commit()

        logger.info(
            f"Selected affirmation {affirmation.id} ({affirmation.category}) for user {user_id}"
        )
        return AffirmationSelection(
            text=affirmation.text, category=affirmation.category, affirmation_id=affirmation.id
        )

    def _suppress(
        self, user_id: int, reason: str, context: str | None, popup_id: int | None
    ) -> None:
        logger.debug(f"Affirmation suppressed for user {user_id}: {reason}")
        log_event(
            self.db,
            user_id,
            EventType.AFFIRMATION_SUPPRESSED,
            {"reason": reason, "context": context, "popup_id": popup_id},
            source=EventSource.SYSTEM,
        )
        return None
