"""Message relay — stores opaque ciphertext and serves it back in order."""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from radr.exceptions import Forbidden, NotFound, ValidationError
from radr.models.group import RadrGroupMember
from radr.models.message import MessageType, RadrMessage
from radr.models.user import User
from radr.services import group_service, user_directory
from radr.services.events import DomainEvent, MessagePosted

logger = logging.getLogger(__name__)


def message_to_dict(message: RadrMessage, author: Optional[User]) -> dict[str, Any]:
    return {
        "id": message.id,
        "group_id": message.group_id,
        "user_id": message.user_id,
        "type": message.type.value if isinstance(message.type, MessageType) else message.type,
        "content": message.content,
        "metadata": message.extra or {},
        "created_at": message.created_at,
        "username": author.username if author else None,
        "name": author.name if author else None,
    }


def post_message(
    db: Session,
    actor_user_id: str,
    group_id: str,
    content: Optional[str],
    events: Optional[list[DomainEvent]] = None,
) -> dict[str, Any]:
    """Persist a ``text`` message. ``content`` is never inspected beyond non-blankness."""
    if not content or not content.strip():
        raise ValidationError("Message content required")

    group = group_service.get_group(db, group_id)
    group_service.require_membership(db, group_id, actor_user_id)

    message = RadrMessage(group_id=group_id, user_id=actor_user_id, type=MessageType.text, content=content, extra={})
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info("Message %s posted to radr group %s by user %s", message.id, group_id, actor_user_id)

    author = user_directory.get_user(db, actor_user_id)
    if events is not None:
        others = tuple(
            uid
            for (uid,) in db.query(RadrGroupMember.user_id)
            .filter(RadrGroupMember.group_id == group_id, RadrGroupMember.user_id != actor_user_id)
            .all()
        )
        if others:
            events.append(MessagePosted(group_id, group.target_name, user_directory.display_name(author), others))

    return message_to_dict(message, author)


def get_messages(db: Session, actor_user_id: str, group_id: str) -> list[dict[str, Any]]:
    """All messages of a group, oldest first, for members only."""
    group_service.get_group(db, group_id)
    group_service.require_membership(db, group_id, actor_user_id)

    rows = (
        db.query(RadrMessage, User)
        .outerjoin(User, User.user_id == RadrMessage.user_id)
        .filter(RadrMessage.group_id == group_id)
        .order_by(RadrMessage.created_at.asc(), RadrMessage.id.asc())
        .all()
    )
    return [message_to_dict(message, author) for message, author in rows]


def delete_message(db: Session, message_id: int, is_admin: bool) -> None:
    """Administrative hard delete; no other rows are touched."""
    if not is_admin:
        raise Forbidden("Admins only")
    message = db.query(RadrMessage).filter(RadrMessage.id == message_id).first()
    if not message:
        raise NotFound("Message not found")
    db.delete(message)
    db.commit()
    logger.info("Deleted radr message %s", message_id)
