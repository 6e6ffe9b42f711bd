"""Pydantic schemas for Radr messages."""
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel


class MessageCreate(BaseModel):
    content: Optional[str] = None  # opaque envelope, never inspected server-side


class MessageOut(BaseModel):
    id: int
    group_id: str
    user_id: str
    type: str  # text, arrival, leave
    content: str
    metadata: dict[str, Any] = {}
    created_at: datetime
    username: Optional[str] = None
    name: Optional[str] = None
