"""Chat models - One message thread per user pair"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
import uuid

from skillswap.database import Base
from skillswap.models.common import utcnow


class Chat(Base):
    """Message thread shared by exactly two users (keyed by canonical pair)"""

    __tablename__ = "chats"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    pair_key = Column(String(80), unique=True, nullable=False)
    user_low = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_high = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        order_by="ChatMessage.timestamp",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def participants(self):
        return [self.user_low, self.user_high]

    def __repr__(self):
        return f"<Chat(id={self.id}, pair={self.pair_key})>"


class ChatMessage(Base):
    """Single text message inside a chat"""

    __tablename__ = "chat_messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    chat_id = Column(Uuid, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(String(1000), nullable=False)
    message_type = Column(String(20), nullable=False, default="text")
    is_read = Column(Boolean, nullable=False, default=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    chat = relationship("Chat", back_populates="messages")

    __table_args__ = (
        Index("idx_chat_messages_chat_time", "chat_id", "timestamp"),
    )

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, chat={self.chat_id}, sender={self.sender_id})>"
