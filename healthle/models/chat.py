"""SQLAlchemy models for chat sessions and messages."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID

from healthle.models.base import Base


class ChatSession(Base):
    """A saved conversation keyed by the assistant's thread id."""

    __tablename__ = "chat_sessions"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    thread_id = Column(Text, nullable=False, unique=True)
    uid = Column(UUID(as_uuid=False))
    created_at = Column(DateTime(timezone=True), server_default="now()")


class ChatMessage(Base):
    """
    One message of a consultation chat.

    Messages written from the chat page carry `consultation_id`; messages
    written while continuing a saved session carry `chat_session_id`.
    """

    __tablename__ = "chat_messages"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    consultation_id = Column(Text, index=True)
    chat_session_id = Column(UUID(as_uuid=False), index=True)
    sender = Column(String(8), nullable=False)  # user | ai
    message = Column(Text, nullable=False)
    is_question = Column(Boolean, nullable=False, default=False)
    uid = Column(UUID(as_uuid=False))
    created_at = Column(DateTime(timezone=True), server_default="now()")

    def __repr__(self) -> str:
        return f"<ChatMessage(id={self.id}, sender={self.sender})>"
