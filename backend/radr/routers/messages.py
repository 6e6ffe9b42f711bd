"""Radr message relay routes."""
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from radr.auth import Principal, get_current_user, require_admin
from radr.database import get_db
from radr.dependencies import get_dispatcher
from radr.schemas.message import MessageCreate, MessageOut
from radr.services import message_service
from radr.services.events import DomainEvent, EventDispatcher

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/groups/{group_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def post_message(
    group_id: str,
    payload: MessageCreate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Store an encrypted envelope as a ``text`` message."""
    events: list[DomainEvent] = []
    message = message_service.post_message(db, principal.user_id, group_id, payload.content, events=events)
    background_tasks.add_task(dispatcher.dispatch, events)
    return message


@router.get("/groups/{group_id}/messages", response_model=list[MessageOut])
def get_messages(group_id: str, principal: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    """Group history, oldest first. Ciphertext is returned untouched."""
    return message_service.get_messages(db, principal.user_id, group_id)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(message_id: int, principal: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    message_service.delete_message(db, message_id, is_admin=principal.is_admin)
