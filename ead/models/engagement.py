"""Engagement models — lesson comments with replies, course ratings, likes."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ead.database import Base


class LessonComment(Base):
    __tablename__ = "lesson_comments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lesson_id = Column(String(36), ForeignKey("lessons.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    # Author snapshot at posting time
    user_name = Column(String(255), nullable=False)
    user_avatar = Column(Text, nullable=True)
    text = Column(Text, nullable=False)
    likes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    replies = relationship("LessonCommentReply", back_populates="comment",
                           cascade="all, delete-orphan", order_by="LessonCommentReply.created_at")


class LessonCommentReply(Base):
    __tablename__ = "lesson_comment_replies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    comment_id = Column(String(36), ForeignKey("lesson_comments.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    user_name = Column(String(255), nullable=False)
    user_avatar = Column(Text, nullable=True)
    text = Column(Text, nullable=False)
    likes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    comment = relationship("LessonComment", back_populates="replies")


class CourseRating(Base):
    __tablename__ = "course_ratings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    user_name = Column(String(255), nullable=False)
    user_avatar = Column(Text, nullable=True)
    score = Column(Integer, nullable=False)  # 1-5 stars
    text = Column(Text, nullable=False, default="")
    likes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("course_id", "user_id", name="uq_rating_course_user"),
    )


class EngagementLike(Base):
    """One row per (target, viewer); backs the per-viewer liked flag."""

    __tablename__ = "engagement_likes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    target_type = Column(String(20), nullable=False)  # comment | reply | rating
    target_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("target_type", "target_id", "user_id", name="uq_like_target_user"),
    )
