"""Progress models — per-lesson watch time and per-course rollup."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, Integer, DateTime, Boolean, ForeignKey, Text, JSON, UniqueConstraint

from ead.database import Base


class LessonProgress(Base):
    __tablename__ = "lesson_progress"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    lesson_id = Column(String(36), ForeignKey("lessons.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    watched_seconds = Column(Float, nullable=False, default=0.0)  # never decreases
    total_seconds = Column(Float, nullable=False, default=0.0)
    watched_percentage = Column(Float, nullable=False, default=0.0)
    completed = Column(Boolean, nullable=False, default=False)  # never reset
    started_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_lesson_progress_user_lesson"),
    )


class UserProgress(Base):
    __tablename__ = "user_progress"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    watched_lessons = Column(JSON, nullable=False, default=list)  # lesson ids, each at most once
    percentage = Column(Float, nullable=False, default=0.0)
    study_minutes = Column(Float, nullable=False, default=0.0)
    last_lesson_id = Column(String(36), nullable=True)
    started_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    # Set exactly once; guards the completion side effect
    completed_at = Column(DateTime, nullable=True)
    self_rating = Column(Integer, nullable=True)
    self_comment = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_user_progress_user_course"),
    )
