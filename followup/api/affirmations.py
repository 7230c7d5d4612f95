"""Affirmation endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from followup.api.users import get_user_or_404
from followup.database import get_db
from followup.models.affirmation import Affirmation as AffirmationModel
from followup.models.affirmation import AffirmationCategory
from followup.schemas.affirmation import (
    Affirmation,
    AffirmationSelection,
    AffirmationSelectRequest,
)
from followup.services.affirmations import AffirmationService

router = APIRouter(prefix="/api/v1/affirmations", tags=["affirmations"])


@router.get("/", response_model=list[Affirmation])
def list_affirmations(
    category: AffirmationCategory | None = None, db: Session = Depends(get_db)
) -> list[AffirmationModel]:
    """List the affirmation catalogue."""
    query = db.query(AffirmationModel)
    if category:
        query = query.filter(AffirmationModel.category == category.value)
    return query.order_by(AffirmationModel.category, AffirmationModel.id).all()


@router.post("/select", response_model=AffirmationSelection | None)
def select_affirmation(
    request: AffirmationSelectRequest, db: Session = Depends(get_db)
) -> AffirmationSelection | None:
    """Pick an affirmation for a context, or null when rate limits apply."""
    get_user_or_404(db, request.user_id)
    return AffirmationService(db).select(request.user_id, request.context, request.popup_id)
