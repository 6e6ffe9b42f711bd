"""RadrMessage ORM model."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from radr.database import Base
from radr.models.group import utcnow


class MessageType(str, enum.Enum):
    text = "text"
    arrival = "arrival"
    leave = "leave"


class RadrMessage(Base):
    """A relayed message.

    ``content`` is opaque client ciphertext for ``text`` messages and plain
    readable text for the ``arrival``/``leave`` system messages. The JSON
    column is called ``metadata`` in the table; the attribute is ``extra``
    because ``metadata`` is reserved on declarative classes.
    """

    __tablename__ = "radr_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(String(36), ForeignKey("radr_groups.group_id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    type = Column(SAEnum(MessageType), nullable=False, default=MessageType.text)
    content = Column(Text, nullable=False)
    extra = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True)

    group = relationship("RadrGroup", back_populates="messages")
    author = relationship("User")
