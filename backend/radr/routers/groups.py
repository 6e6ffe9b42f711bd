"""Radr group API routes — lifecycle, membership and arrival checks."""
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from radr.auth import Principal, get_current_user
from radr.database import get_db
from radr.dependencies import get_dispatcher
from radr.schemas.group import (
    AddMembersIn, AddMembersOut, ArrivalCheckIn, ArrivalOut, GroupCreate, GroupCreatedOut,
    GroupListItem, InviteIn, InviteOut,
)
from radr.services import arrival_service, group_service
from radr.services.events import DomainEvent, EventDispatcher

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/groups", response_model=GroupCreatedOut, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: GroupCreate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Create a group; the caller becomes its creator and first member."""
    events: list[DomainEvent] = []
    group = group_service.create_group(
        db,
        principal.user_id,
        target_name=payload.target_name,
        target_lat=payload.target_lat,
        target_lng=payload.target_lng,
        encryption_key=payload.encryption_key,
        target_radius_km=payload.target_radius_km,
        expires_in_hours=payload.expires_in_hours,
        invite_usernames=payload.usernames,
        events=events,
    )
    background_tasks.add_task(dispatcher.dispatch, events)
    return group


@router.get("/groups", response_model=list[GroupListItem])
def list_groups(principal: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    """Active groups the caller belongs to, each with its key and roster."""
    return group_service.list_groups(db, principal.user_id)


@router.post("/groups/{group_id}/members", response_model=AddMembersOut)
def add_members(
    group_id: str,
    payload: AddMembersIn,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    events: list[DomainEvent] = []
    added = group_service.add_members(db, principal.user_id, group_id, payload.usernames, events=events)
    background_tasks.add_task(dispatcher.dispatch, events)
    return {"added": added}


@router.post("/groups/{group_id}/invite", response_model=InviteOut)
def invite(
    group_id: str,
    payload: InviteIn,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Invite one username; inviting an existing member reports ``added: false``."""
    events: list[DomainEvent] = []
    added = group_service.invite(db, principal.user_id, group_id, payload.username, events=events)
    background_tasks.add_task(dispatcher.dispatch, events)
    return {"added": added}


@router.delete("/groups/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    group_id: str,
    user_id: str,
    principal: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    group_service.remove_member(db, principal.user_id, group_id, user_id)


@router.post("/groups/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_group(group_id: str, principal: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    group_service.leave_group(db, principal.user_id, group_id)


@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(group_id: str, principal: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    """Hard delete, cascading to memberships and messages."""
    group_service.delete_group(db, principal.user_id, group_id)


@router.post("/groups/{group_id}/check-arrival", response_model=ArrivalOut)
def check_arrival(
    group_id: str,
    payload: ArrivalCheckIn,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    events: list[DomainEvent] = []
    result = arrival_service.check_arrival(db, principal.user_id, group_id, payload.lat, payload.lng, events=events)
    background_tasks.add_task(dispatcher.dispatch, events)
    return {"status": result.status.value, "message": result.message, "distance": result.distance_km}
