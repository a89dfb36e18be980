"""Course chat models — one channel per course plus its messages."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship

from ead.database import Base


class CourseChat(Base):
    __tablename__ = "course_chats"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, unique=True)
    course_name = Column(String(255), nullable=False)
    members = Column(JSON, nullable=False, default=list)  # user ids with an approved enrollment
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    messages = relationship("ChatMessage", back_populates="chat", cascade="all, delete-orphan")


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    chat_id = Column(String(36), ForeignKey("course_chats.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    user_name = Column(String(255), nullable=False)
    user_avatar = Column(Text, nullable=True)
    user_role = Column(String(20), nullable=False)
    text = Column(Text, nullable=False)
    kind = Column(String(20), nullable=False, default="text")  # text | file | image
    attachment = Column(JSON, nullable=True)  # {name, content_type, size, url}
    edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    chat = relationship("CourseChat", back_populates="messages")
