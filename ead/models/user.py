"""User model — identity, profile and cached learning aggregates."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Float, DateTime, Boolean, Text, JSON
from sqlalchemy.orm import relationship

from ead.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="student")  # student | teacher | admin
    name = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    last_login_at = Column(DateTime, nullable=True)

    # Profile
    nickname = Column(String(255), nullable=True)
    avatar = Column(Text, nullable=True)  # URL or data URI
    bio = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    birth_date = Column(String(20), nullable=True)

    # Aggregates, recomputed by the progress engine
    completed_courses = Column(JSON, nullable=False, default=list)
    in_progress_courses = Column(JSON, nullable=False, default=list)
    study_minutes = Column(Float, nullable=False, default=0.0)
    score = Column(Integer, nullable=False, default=0)

    # Relationships
    courses = relationship("Course", back_populates="owner")
