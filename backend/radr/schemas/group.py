"""Pydantic schemas for Radr groups."""
from __future__ import annotations
from datetime import datetime
from typing import Annotated, Optional
from pydantic import BaseModel, Field

# JSON numbers only; booleans and numeric strings are rejected
Coordinate = Annotated[float, Field(strict=True)]


class GroupCreate(BaseModel):
    target_name: Optional[str] = None
    target_lat: Optional[Coordinate] = None
    target_lng: Optional[Coordinate] = None
    target_radius_km: Optional[float] = None
    expires_in_hours: Optional[float] = None
    encryption_key: Optional[str] = None
    usernames: list[str] = []


class GroupCreatedOut(BaseModel):
    group_id: str
    creator_id: str
    target_name: str
    target_lat: float
    target_lng: float
    target_radius_km: float
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberOut(BaseModel):
    user_id: str
    username: str
    name: Optional[str] = None
    has_arrived: bool
    arrived_at: Optional[datetime] = None
    profile_icon: Optional[str] = None
    profile_color: Optional[str] = None


class GroupListItem(BaseModel):
    group_id: str
    creator_id: str
    target_name: str
    target_lat: float
    target_lng: float
    target_radius_km: float
    expires_at: datetime
    created_at: datetime
    encryption_key: str
    has_arrived: bool
    arrived_at: Optional[datetime] = None
    member_count: int
    arrived_count: int
    is_creator: bool
    members: list[MemberOut] = []


class AddMembersIn(BaseModel):
    usernames: list[str] = Field(default_factory=list)


class AddMembersOut(BaseModel):
    added: list[str]


class InviteIn(BaseModel):
    username: str


class InviteOut(BaseModel):
    added: bool


class ArrivalCheckIn(BaseModel):
    lat: Optional[Coordinate] = None
    lng: Optional[Coordinate] = None


class ArrivalOut(BaseModel):
    status: str
    message: str
    distance: Optional[float] = None
