"""User API endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from followup.database import get_db
from followup.models.contact import Contact as ContactModel
from followup.models.user import User as UserModel
from followup.schemas.affirmation import StreakInfo
from followup.schemas.contact import Contact, ContactCreate
from followup.schemas.user import User, UserCreate, UserUpdate
from followup.services.streaks import StreakService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def get_user_or_404(db: Session, user_id: int) -> UserModel:
    user = db.get(UserModel, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/", response_model=User, status_code=201)
def create_user(user: UserCreate, db: Session = Depends(get_db)) -> UserModel:
    """Create a new user."""
    db_user = UserModel(**user.model_dump())
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


@router.get("/", response_model=list[User])
def list_users(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)) -> list[UserModel]:
    """List all users."""
    return db.query(UserModel).offset(skip).limit(limit).all()


@router.get("/{user_id}", response_model=User)
def get_user(user_id: int, db: Session = Depends(get_db)) -> UserModel:
    """Get a user by ID."""
    return get_user_or_404(db, user_id)


@router.patch("/{user_id}", response_model=User)
def update_user(user_id: int, user_update: UserUpdate, db: Session = Depends(get_db)) -> UserModel:
    """Update a user."""
    user = get_user_or_404(db, user_id)

    update_data = user_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user


@router.post("/{user_id}/contacts", response_model=Contact, status_code=201)
def create_contact(
    user_id: int, contact: ContactCreate, db: Session = Depends(get_db)
) -> ContactModel:
    """Add a contact for a user."""
    get_user_or_404(db, user_id)
    db_contact = ContactModel(user_id=user_id, **contact.model_dump())
    db.add(db_contact)
    db.commit()
    db.refresh(db_contact)
    return db_contact


@router.get("/{user_id}/contacts", response_model=list[Contact])
def list_contacts(user_id: int, db: Session = Depends(get_db)) -> list[ContactModel]:
    get_user_or_404(db, user_id)
    return (
        db.query(ContactModel)
        .filter(ContactModel.user_id == user_id)
        .order_by(ContactModel.name)
        .all()
    )


@router.get("/{user_id}/streak", response_model=StreakInfo)
def get_streak(user_id: int, db: Session = Depends(get_db)) -> StreakInfo:
    """Current run of consecutive local days with a completed reminder."""
    get_user_or_404(db, user_id)
    return StreakService(db).get_streak(user_id)
