"""User directory lookups used for invites and author display."""
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from radr.models.user import User


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.user_id == user_id).first()


def resolve_usernames(db: Session, usernames: Iterable[str]) -> dict[str, str]:
    """Map each known username to its user id; unknown names are left out."""
    wanted = {u.strip() for u in usernames if u and u.strip()}
    if not wanted:
        return {}
    rows = db.query(User.username, User.user_id).filter(User.username.in_(wanted)).all()
    return {username: user_id for username, user_id in rows}


def display_name(user: Optional[User], fallback: str = "Someone") -> str:
    if user is None:
        return fallback
    return user.name or user.username or fallback
