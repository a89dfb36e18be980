"""Course enrollment model — request/approval record per (user, course)."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, UniqueConstraint

from ead.database import Base


class CourseEnrollment(Base):
    __tablename__ = "course_enrollments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    # Denormalized for the owner's review screen
    user_name = Column(String(255), nullable=False)
    user_email = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending | approved | rejected
    requested_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    decided_at = Column(DateTime, nullable=True)
    decided_by = Column(String(36), nullable=True)  # user id, or "system" for auto-approval
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )
