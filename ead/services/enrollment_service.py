"""Enrollment service — request / approve / reject / auto-approve workflow.

State machine per (user, course):

    (none) --request--> pending --approve--> approved
                           \\----reject----> rejected
    (none) --auto-approve (public courses)--> approved

approved and rejected are terminal. A (user, course) pair has at most one
record, enforced both here and by a unique constraint.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ead.errors import DuplicateEnrollment, EnrollmentNotFound, InvalidEnrollmentTransition, NotFoundError
from ead.models.enrollment import CourseEnrollment
from ead.repositories import CourseRepository, EnrollmentRepository
from ead.services import chat_service
from ead.services.notification_service import NotificationKind, create_notification
from ead.services.stats_service import update_course_stats

logger = logging.getLogger(__name__)

SYSTEM_APPROVER = "system"


def course_link(course_id: str) -> str:
    return f"/course/{course_id}"


def _insert(db: Session, enrollment: CourseEnrollment) -> CourseEnrollment:
    try:
        EnrollmentRepository(db).put(enrollment)
    except IntegrityError:
        # lost a race with a concurrent request for the same pair
        db.rollback()
        raise DuplicateEnrollment(enrollment.user_id, enrollment.course_id)
    return enrollment


def _require_course(db: Session, course_id: str):
    course = CourseRepository(db).get(course_id)
    if not course or not course.active:
        raise NotFoundError("Course not found")
    return course


def _ensure_no_enrollment(db: Session, user_id: str, course_id: str) -> None:
    _require_course(db, course_id)
    if EnrollmentRepository(db).get_for(user_id, course_id):
        logger.warning("duplicate enrollment request user=%s course=%s", user_id, course_id)
        raise DuplicateEnrollment(user_id, course_id)


def request_enrollment(
    db: Session,
    course_id: str,
    user_id: str,
    user_name: str,
    user_email: str,
    notes: Optional[str] = None,
) -> CourseEnrollment:
    """Create a pending enrollment for a private course."""
    _ensure_no_enrollment(db, user_id, course_id)

    enrollment = _insert(db, CourseEnrollment(
        course_id=course_id,
        user_id=user_id,
        user_name=user_name,
        user_email=user_email,
        status="pending",
        notes=notes,
    ))

    create_notification(
        db,
        user_id,
        NotificationKind.INFO,
        "Enrollment Request Sent",
        "Your enrollment request was sent and is awaiting approval.",
    )
    db.commit()
    db.refresh(enrollment)
    logger.info("enrollment %s requested user=%s course=%s", enrollment.id, user_id, course_id)
    return enrollment


def auto_approve_enrollment(
    db: Session,
    course_id: str,
    user_id: str,
    user_name: str,
    user_email: str,
) -> CourseEnrollment:
    """Create an already-approved enrollment; used for public courses only."""
    _ensure_no_enrollment(db, user_id, course_id)

    now = datetime.now(timezone.utc)
    enrollment = _insert(db, CourseEnrollment(
        course_id=course_id,
        user_id=user_id,
        user_name=user_name,
        user_email=user_email,
        status="approved",
        requested_at=now,
        decided_at=now,
        decided_by=SYSTEM_APPROVER,
    ))

    create_notification(
        db,
        user_id,
        NotificationKind.SUCCESS,
        "Enrollment Complete!",
        "You are now enrolled in the course.",
        link=course_link(course_id),
    )
    chat_service.add_enrolled_user(db, course_id, user_id)
    update_course_stats(db, course_id)
    db.commit()
    db.refresh(enrollment)
    logger.info("enrollment %s auto-approved user=%s course=%s", enrollment.id, user_id, course_id)
    return enrollment


def enroll(db: Session, course_id: str, user_id: str, user_name: str, user_email: str,
           notes: Optional[str] = None) -> CourseEnrollment:
    """Public courses skip review; private ones wait for the owner or an admin."""
    course = _require_course(db, course_id)
    if course.is_public:
        return auto_approve_enrollment(db, course_id, user_id, user_name, user_email)
    return request_enrollment(db, course_id, user_id, user_name, user_email, notes)


def _get_pending(db: Session, enrollment_id: str, target: str) -> CourseEnrollment:
    enrollment = EnrollmentRepository(db).get(enrollment_id)
    if not enrollment:
        raise EnrollmentNotFound(enrollment_id)
    if enrollment.status != "pending":
        raise InvalidEnrollmentTransition(enrollment_id, enrollment.status, target)
    return enrollment


def approve_enrollment(db: Session, enrollment_id: str, approver_id: str) -> CourseEnrollment:
    """pending -> approved. Whether approver_id may do this is checked by the caller."""
    enrollment = _get_pending(db, enrollment_id, "approved")

    enrollment.status = "approved"
    enrollment.decided_at = datetime.now(timezone.utc)
    enrollment.decided_by = approver_id
    db.flush()

    create_notification(
        db,
        enrollment.user_id,
        NotificationKind.SUCCESS,
        "Enrollment Approved!",
        "Your enrollment was approved. You can now access the course.",
        link=course_link(enrollment.course_id),
    )
    chat_service.add_enrolled_user(db, enrollment.course_id, enrollment.user_id)
    update_course_stats(db, enrollment.course_id)
    db.commit()
    logger.info("enrollment %s approved by %s", enrollment_id, approver_id)
    return enrollment


def reject_enrollment(
    db: Session,
    enrollment_id: str,
    rejecter_id: str,
    reason: Optional[str] = None,
) -> CourseEnrollment:
    """pending -> rejected, keeping the optional reason in notes."""
    enrollment = _get_pending(db, enrollment_id, "rejected")

    enrollment.status = "rejected"
    enrollment.decided_at = datetime.now(timezone.utc)
    enrollment.decided_by = rejecter_id
    if reason:
        enrollment.notes = reason
    db.flush()

    message = "Your enrollment request was rejected."
    if reason:
        message = f"{message} {reason}"
    create_notification(db, enrollment.user_id, NotificationKind.WARNING, "Enrollment Rejected", message)
    chat_service.remove_participant_from_chat(db, enrollment.course_id, enrollment.user_id)
    db.commit()
    logger.info("enrollment %s rejected by %s", enrollment_id, rejecter_id)
    return enrollment


def is_user_enrolled_in_course(db: Session, user_id: str, course_id: str) -> bool:
    """The access predicate: true iff an approved enrollment exists."""
    enrollment = EnrollmentRepository(db).get_for(user_id, course_id)
    return bool(enrollment and enrollment.status == "approved")


def get_enrollment(db: Session, enrollment_id: str) -> Optional[CourseEnrollment]:
    return EnrollmentRepository(db).get(enrollment_id)


def get_user_course_enrollment(db: Session, user_id: str, course_id: str) -> Optional[CourseEnrollment]:
    return EnrollmentRepository(db).get_for(user_id, course_id)


def get_enrollments_by_course(db: Session, course_id: str) -> list[CourseEnrollment]:
    return EnrollmentRepository(db).list_by(course_id=course_id)


def get_user_enrollments(db: Session, user_id: str) -> list[CourseEnrollment]:
    return EnrollmentRepository(db).list_by(user_id=user_id)


def get_pending_enrollments(db: Session) -> list[CourseEnrollment]:
    return EnrollmentRepository(db).list_by(status="pending")


def get_pending_enrollments_by_course(db: Session, course_id: str) -> list[CourseEnrollment]:
    return EnrollmentRepository(db).list_by(course_id=course_id, status="pending")


def get_approved_enrollments_by_course(db: Session, course_id: str) -> list[CourseEnrollment]:
    return EnrollmentRepository(db).list_by(course_id=course_id, status="approved")
