"""Enrollment request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class EnrollmentRequest(BaseModel):
    notes: Optional[str] = None


class EnrollmentReject(BaseModel):
    reason: Optional[str] = None


class EnrollmentResponse(BaseModel):
    id: str
    course_id: str
    user_id: str
    user_name: str
    user_email: str
    status: str
    requested_at: str
    decided_at: Optional[str] = None
    decided_by: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class EnrollmentListResponse(BaseModel):
    enrollments: list[EnrollmentResponse]
    total: int


class EnrollmentStatusResponse(BaseModel):
    course_id: str
    enrolled: bool
    enrollment: Optional[EnrollmentResponse] = None
