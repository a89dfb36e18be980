"""Enrollments router — enroll, review queue, approve/reject."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.models.enrollment import CourseEnrollment
from ead.schemas.enrollment import (
    EnrollmentRequest,
    EnrollmentReject,
    EnrollmentResponse,
    EnrollmentListResponse,
    EnrollmentStatusResponse,
)
from ead.middleware.auth import get_current_user, require_teacher, can_manage_course
from ead.services import catalog_service, enrollment_service

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


def _enrollment_to_response(enrollment: CourseEnrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=enrollment.id,
        course_id=enrollment.course_id,
        user_id=enrollment.user_id,
        user_name=enrollment.user_name,
        user_email=enrollment.user_email,
        status=enrollment.status,
        requested_at=enrollment.requested_at.isoformat(),
        decided_at=enrollment.decided_at.isoformat() if enrollment.decided_at else None,
        decided_by=enrollment.decided_by,
        notes=enrollment.notes,
    )


def _list_response(enrollments: list[CourseEnrollment]) -> EnrollmentListResponse:
    return EnrollmentListResponse(
        enrollments=[_enrollment_to_response(e) for e in enrollments],
        total=len(enrollments),
    )


def _check_reviewer(db: Session, enrollment_id: str, user: User) -> None:
    enrollment = enrollment_service.get_enrollment(db, enrollment_id)
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    course = catalog_service.get_course(db, enrollment.course_id)
    if not course or not can_manage_course(user, course):
        raise HTTPException(status_code=403, detail="Only the course owner or an admin can review enrollments")


@router.post("/courses/{course_id}", response_model=EnrollmentResponse, status_code=201)
def enroll(
    course_id: str,
    req: Optional[EnrollmentRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Enroll in a public course, or request access to a private one."""
    enrollment = enrollment_service.enroll(
        db,
        course_id=course_id,
        user_id=current_user.id,
        user_name=current_user.name,
        user_email=current_user.email,
        notes=req.notes if req else None,
    )
    return _enrollment_to_response(enrollment)


@router.get("/me", response_model=EnrollmentListResponse)
def my_enrollments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _list_response(enrollment_service.get_user_enrollments(db, current_user.id))


@router.get("/courses/{course_id}/status", response_model=EnrollmentStatusResponse)
def enrollment_status(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    enrollment = enrollment_service.get_user_course_enrollment(db, current_user.id, course_id)
    return EnrollmentStatusResponse(
        course_id=course_id,
        enrolled=bool(enrollment and enrollment.status == "approved"),
        enrollment=_enrollment_to_response(enrollment) if enrollment else None,
    )


@router.get("/pending", response_model=EnrollmentListResponse)
def pending_enrollments(
    current_user: User = Depends(require_teacher),
    db: Session = Depends(get_db),
):
    """Admins see every pending request; teachers see those for their own courses."""
    if current_user.role == "admin":
        return _list_response(enrollment_service.get_pending_enrollments(db))
    pending = []
    for course in catalog_service.list_courses(db, active_only=False, owner_id=current_user.id):
        pending.extend(enrollment_service.get_pending_enrollments_by_course(db, course.id))
    pending.sort(key=lambda e: e.requested_at, reverse=True)
    return _list_response(pending)


@router.get("/courses/{course_id}", response_model=EnrollmentListResponse)
def course_enrollments(
    course_id: str,
    status: str = "",
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    course = catalog_service.get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    if not can_manage_course(current_user, course):
        raise HTTPException(status_code=403, detail="Not your course")

    if status == "pending":
        enrollments = enrollment_service.get_pending_enrollments_by_course(db, course_id)
    elif status == "approved":
        enrollments = enrollment_service.get_approved_enrollments_by_course(db, course_id)
    else:
        enrollments = enrollment_service.get_enrollments_by_course(db, course_id)
    return _list_response(enrollments)


@router.post("/{enrollment_id}/approve", response_model=EnrollmentResponse)
def approve(
    enrollment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_reviewer(db, enrollment_id, current_user)
    enrollment = enrollment_service.approve_enrollment(db, enrollment_id, current_user.id)
    return _enrollment_to_response(enrollment)


@router.post("/{enrollment_id}/reject", response_model=EnrollmentResponse)
def reject(
    enrollment_id: str,
    req: Optional[EnrollmentReject] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_reviewer(db, enrollment_id, current_user)
    reason = req.reason if req else None
    enrollment = enrollment_service.reject_enrollment(db, enrollment_id, current_user.id, reason)
    return _enrollment_to_response(enrollment)
