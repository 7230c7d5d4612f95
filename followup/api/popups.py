"""Popup queue and trigger rule endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from followup.api.users import get_user_or_404
from followup.database import get_db
from followup.models.popup import Popup as PopupModel
from followup.models.popup import PopupRule as PopupRuleModel
from followup.schemas.popup import (
    NextPopup,
    Popup,
    PopupActionRequest,
    PopupActionResult,
    PopupRule,
    PopupRuleCreate,
    PopupRuleUpdate,
    PopupSnoozeRequest,
)
from followup.services.popups import PopupEngine
from followup.services.scheduling import ReminderScheduler, get_scheduler

router = APIRouter(prefix="/api/v1/popups", tags=["popups"])


def get_popup_engine(
    db: Session = Depends(get_db), scheduler: ReminderScheduler = Depends(get_scheduler)
) -> PopupEngine:
    return PopupEngine(db, scheduler=scheduler)


@router.get("/next", response_model=NextPopup)
def get_next_popup(
    user_id: int = Query(..., description="User ID polling for a popup"),
    engine: PopupEngine = Depends(get_popup_engine),
) -> NextPopup:
    """Claim the highest-priority eligible popup for display."""
    get_user_or_404(engine.db, user_id)
    popup, did_transition = engine.get_next_popup(user_id)
    return NextPopup(
        popup=Popup.model_validate(popup) if popup else None, did_transition=did_transition
    )


@router.get("/", response_model=list[Popup])
def list_popups(
    user_id: int = Query(..., description="User ID to list popups for"),
    status: str | None = None,
    limit: int = 50,
    db: Session = Depends(get_db),
) -> list[PopupModel]:
    query = db.query(PopupModel).filter(PopupModel.user_id == user_id)
    if status:
        query = query.filter(PopupModel.status == status)
    return query.order_by(PopupModel.queued_at.desc(), PopupModel.id.desc()).limit(limit).all()


@router.post("/expire")
def expire_popups(
    user_id: int | None = None, engine: PopupEngine = Depends(get_popup_engine)
) -> dict:
    return {"expired": engine.expire_popups(user_id=user_id)}


# Rules


@router.get("/rules", response_model=list[PopupRule])
def list_rules(
    user_id: int = Query(..., description="User ID to list rules for"),
    engine: PopupEngine = Depends(get_popup_engine),
) -> list[PopupRuleModel]:
    return engine.list_rules(user_id)


@router.post("/rules", response_model=PopupRule, status_code=201)
def create_rule(
    rule: PopupRuleCreate, engine: PopupEngine = Depends(get_popup_engine)
) -> PopupRuleModel:
    get_user_or_404(engine.db, rule.user_id)
    try:
        return engine.create_rule(rule)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/rules/{rule_id}", response_model=PopupRule)
def update_rule(
    rule_id: int, rule_update: PopupRuleUpdate, engine: PopupEngine = Depends(get_popup_engine)
) -> PopupRuleModel:
    try:
        rule = engine.update_rule(rule_id, rule_update)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not rule:
        raise HTTPException(status_code=404, detail="Popup rule not found")
    return rule


@router.delete("/rules/{rule_id}", status_code=204)
def delete_rule(rule_id: int, engine: PopupEngine = Depends(get_popup_engine)) -> None:
    if not engine.delete_rule(rule_id):
        raise HTTPException(status_code=404, detail="Popup rule not found")


# Popups


@router.get("/{popup_id}", response_model=Popup)
def get_popup(popup_id: int, db: Session = Depends(get_db)) -> PopupModel:
    popup = db.get(PopupModel, popup_id)
    if not popup:
        raise HTTPException(status_code=404, detail="Popup not found")
    return popup


@router.post("/{popup_id}/action", response_model=PopupActionResult)
def apply_action(
    popup_id: int,
    request: PopupActionRequest,
    engine: PopupEngine = Depends(get_popup_engine),
) -> PopupActionResult:
    """Resolve a popup with FOLLOW_UP_NOW, MARK_DONE, SNOOZE or DISMISS."""
    try:
        result = engine.apply_action(popup_id, request.action_type, request.action_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Popup not found")
    return result


@router.post("/{popup_id}/snooze", response_model=Popup)
def snooze_popup(
    popup_id: int,
    request: PopupSnoozeRequest,
    engine: PopupEngine = Depends(get_popup_engine),
) -> PopupModel:
    """Hide an open popup for a while without resolving it."""
    try:
        popup = engine.snooze_popup(popup_id, request.minutes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if popup is None:
        raise HTTPException(status_code=404, detail="Popup not found")
    return popup
