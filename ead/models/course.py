"""Catalog models — courses, their lessons and lesson materials."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Float, DateTime, Boolean, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship

from ead.database import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    owner_name = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    thumbnail = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, default="General")
    level = Column(String(20), nullable=False, default="beginner")  # beginner | intermediate | advanced
    tags = Column(JSON, nullable=False, default=list)
    price = Column(Float, nullable=False, default=0.0)  # informational only
    is_public = Column(Boolean, nullable=False, default=True)
    active = Column(Boolean, nullable=False, default=True)

    # Cached aggregates, see catalog_service.update_course_stats
    estimated_minutes = Column(Integer, nullable=False, default=0)
    student_count = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    owner = relationship("User", back_populates="courses")
    lessons = relationship("Lesson", back_populates="course", cascade="all, delete-orphan",
                           order_by="Lesson.position")


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    # Sparse rank: assigned as existing_count + 1, never renumbered on delete
    position = Column(Integer, nullable=False, default=1)
    video_blob_id = Column(String(64), nullable=True)
    video_name = Column(String(255), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=15)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    course = relationship("Course", back_populates="lessons")
    materials = relationship("Material", back_populates="lesson", cascade="all, delete-orphan",
                             order_by="Material.created_at")


class Material(Base):
    __tablename__ = "materials"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lesson_id = Column(String(36), ForeignKey("lessons.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    kind = Column(String(20), nullable=False)  # pdf | image | link | video | other
    content = Column(Text, nullable=False)  # URL for links, blob id otherwise
    size = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    lesson = relationship("Lesson", back_populates="materials")
