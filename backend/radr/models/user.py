"""User ORM model — backing table for the user directory."""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from radr.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(150), nullable=True)
    country = Column(String(100), nullable=True)
    profile_icon = Column(String(50), nullable=True)
    profile_color = Column(String(20), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
