"""User directory routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from radr.auth import Principal, get_current_user, require_admin
from radr.database import get_db
from radr.models.user import User
from radr.schemas.user import UserCreate, UserOut, UserSearchOut
from radr.services import user_directory

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, _: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    """Add a directory entry (admin only)."""
    if db.query(User).filter(User.username == payload.username).first():
        raise HTTPException(status_code=409, detail="Username already taken")
    user = User(**payload.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.username)
    return user


@router.get("/search", response_model=list[UserSearchOut])
def search_users(_: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    """Directory listing used to pick invitees."""
    return db.query(User).order_by(User.username).all()


@router.get("/me", response_model=UserOut)
def get_me(principal: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    user = user_directory.get_user(db, principal.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
