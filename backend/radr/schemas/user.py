"""Pydantic schemas for the user directory."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserCreate(BaseModel):
    username: str
    name: Optional[str] = None
    country: Optional[str] = None
    profile_icon: Optional[str] = None
    profile_color: Optional[str] = None
    is_admin: bool = False


class UserOut(BaseModel):
    user_id: str
    username: str
    name: Optional[str] = None
    country: Optional[str] = None
    profile_icon: Optional[str] = None
    profile_color: Optional[str] = None
    is_admin: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserSearchOut(BaseModel):
    user_id: str
    username: str
    name: Optional[str] = None
    profile_icon: Optional[str] = None
    profile_color: Optional[str] = None

    model_config = {"from_attributes": True}
