"""Affirmation schemas."""

from datetime import date

from pydantic import BaseModel, ConfigDict


class AffirmationSelection(BaseModel):
    text: str
    category: str
    affirmation_id: int


class AffirmationSelectRequest(BaseModel):
    user_id: int
    context: str | None = None
    popup_id: int | None = None


class Affirmation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    category: str
    enabled: bool


class StreakInfo(BaseModel):
    current_streak: int
    last_completed_date: date | None = None
