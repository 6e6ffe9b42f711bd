"""Pydantic schemas for presence updates and nearby scans."""
from typing import Optional
from pydantic import BaseModel

from radr.schemas.group import Coordinate


class PresenceUpdate(BaseModel):
    lat: Optional[Coordinate] = None
    lng: Optional[Coordinate] = None


class NearbyUser(BaseModel):
    user_id: str
    username: str
    lat: float
    lng: float
    last_seen: float
    profile_icon: Optional[str] = None
    profile_color: Optional[str] = None
    distance: float


class NearbyOut(BaseModel):
    nearby: list[NearbyUser]
