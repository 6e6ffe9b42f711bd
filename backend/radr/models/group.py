"""RadrGroup and RadrGroupMember ORM models."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from radr.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RadrGroup(Base):
    """A geofenced chat group.

    ``encryption_key`` is the base64 raw AES-256 group key. The server keeps it
    in plaintext so it can hand the key to members on group listing; anyone
    with database access can read group traffic.
    """

    __tablename__ = "radr_groups"

    group_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    creator_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    target_name = Column(String(200), nullable=False)
    target_lat = Column(Float, nullable=False)
    target_lng = Column(Float, nullable=False)
    target_radius_km = Column(Float, nullable=False, default=10.0)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    encryption_key = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    members = relationship("RadrGroupMember", back_populates="group", cascade="all, delete-orphan")
    messages = relationship("RadrMessage", back_populates="group", cascade="all, delete-orphan")

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; everything is stored as UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now


class RadrGroupMember(Base):
    __tablename__ = "radr_group_members"

    group_id = Column(String(36), ForeignKey("radr_groups.group_id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    has_arrived = Column(Boolean, nullable=False, default=False)
    arrived_at = Column(DateTime(timezone=True), nullable=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    group = relationship("RadrGroup", back_populates="members")
    user = relationship("User")
