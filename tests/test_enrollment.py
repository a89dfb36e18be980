"""Tests for the enrollment workflow: request, auto-approve, approve, reject."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from ead.errors import DuplicateEnrollment, EnrollmentNotFound, InvalidEnrollmentTransition, NotFoundError
from ead.models import CourseEnrollment, Notification
from ead.services import chat_service, enrollment_service


def _enroll(db, course, user):
    return enrollment_service.enroll(db, course.id, user.id, user.name, user.email)


def _notifications(db, user, title):
    return db.query(Notification).filter(Notification.user_id == user.id, Notification.title == title).all()


class TestRequestEnrollment:
    """Private courses create a pending request."""

    def test_private_course_creates_pending(self, db, student, make_course):
        course = make_course(is_public=False)
        enrollment = _enroll(db, course, student)

        assert enrollment.status == "pending"
        assert enrollment.decided_at is None
        assert not enrollment_service.is_user_enrolled_in_course(db, student.id, course.id)

    def test_request_sends_info_notification(self, db, student, make_course):
        course = make_course(is_public=False)
        _enroll(db, course, student)

        sent = _notifications(db, student, "Enrollment Request Sent")
        assert len(sent) == 1
        assert sent[0].kind == "info"

    def test_duplicate_request_rejected(self, db, student, make_course):
        """A second request for the same pair fails and leaves one record."""
        course = make_course(is_public=False)
        _enroll(db, course, student)

        with pytest.raises(DuplicateEnrollment):
            _enroll(db, course, student)

        assert db.query(CourseEnrollment).filter_by(user_id=student.id, course_id=course.id).count() == 1

    def test_duplicate_after_approval_rejected(self, db, student, make_course):
        course = make_course(is_public=True)
        _enroll(db, course, student)

        with pytest.raises(DuplicateEnrollment):
            enrollment_service.request_enrollment(db, course.id, student.id, student.name, student.email)

    def test_missing_course(self, db, student):
        with pytest.raises(NotFoundError):
            enrollment_service.enroll(db, "no-such-course", student.id, student.name, student.email)

    def test_direct_request_for_missing_course(self, db, student):
        with pytest.raises(NotFoundError):
            enrollment_service.request_enrollment(db, "no-such-course", student.id, student.name, student.email)

        assert db.query(CourseEnrollment).count() == 0

    def test_direct_auto_approve_for_missing_course(self, db, student):
        with pytest.raises(NotFoundError):
            enrollment_service.auto_approve_enrollment(db, "no-such-course", student.id, student.name, student.email)

        assert db.query(CourseEnrollment).count() == 0

    def test_inactive_course(self, db, student, make_course):
        course = make_course()
        course.active = False
        db.commit()

        with pytest.raises(NotFoundError):
            _enroll(db, course, student)


class TestAutoApprove:
    """Public courses enroll immediately with no owner action."""

    def test_public_course_is_approved(self, db, student, make_course):
        course = make_course(is_public=True)
        enrollment = _enroll(db, course, student)

        assert enrollment.status == "approved"
        assert enrollment.decided_by == enrollment_service.SYSTEM_APPROVER
        assert enrollment.decided_at is not None
        assert enrollment_service.is_user_enrolled_in_course(db, student.id, course.id)

    def test_student_count_updated(self, db, make_user, make_course):
        course = make_course(is_public=True)
        _enroll(db, course, make_user())
        _enroll(db, course, make_user())

        db.refresh(course)
        assert course.student_count == 2

    def test_success_notification_links_course(self, db, student, make_course):
        course = make_course(is_public=True)
        _enroll(db, course, student)

        sent = _notifications(db, student, "Enrollment Complete!")
        assert len(sent) == 1
        assert sent[0].kind == "success"
        assert sent[0].link == f"/course/{course.id}"

    def test_user_joins_course_chat(self, db, student, make_course):
        course = make_course(is_public=True)
        _enroll(db, course, student)

        assert chat_service.can_user_access_chat(db, student.id, course.id)


class TestReview:
    """Owner/admin decisions on pending requests."""

    def test_approve(self, db, student, teacher, make_course):
        course = make_course(is_public=False)
        pending = _enroll(db, course, student)

        approved = enrollment_service.approve_enrollment(db, pending.id, teacher.id)

        assert approved.status == "approved"
        assert approved.decided_by == teacher.id
        assert enrollment_service.is_user_enrolled_in_course(db, student.id, course.id)
        assert len(_notifications(db, student, "Enrollment Approved!")) == 1
        db.refresh(course)
        assert course.student_count == 1

    def test_approve_adds_chat_member(self, db, student, teacher, make_course):
        course = make_course(is_public=False)
        pending = _enroll(db, course, student)
        enrollment_service.approve_enrollment(db, pending.id, teacher.id)

        chat = chat_service.get_chat_by_course(db, course.id)
        assert chat is not None
        assert student.id in chat.members

    def test_reject_keeps_reason(self, db, student, teacher, make_course):
        course = make_course(is_public=False)
        pending = _enroll(db, course, student)

        rejected = enrollment_service.reject_enrollment(db, pending.id, teacher.id, "Course is full.")

        assert rejected.status == "rejected"
        assert rejected.notes == "Course is full."
        assert not enrollment_service.is_user_enrolled_in_course(db, student.id, course.id)
        sent = _notifications(db, student, "Enrollment Rejected")
        assert len(sent) == 1
        assert sent[0].kind == "warning"
        assert "Course is full." in sent[0].message

    def test_reject_does_not_grant_chat(self, db, student, teacher, make_course):
        course = make_course(is_public=False)
        chat_service.create_course_chat(db, course.id, course.title)
        pending = _enroll(db, course, student)

        enrollment_service.reject_enrollment(db, pending.id, teacher.id)

        assert not chat_service.can_user_access_chat(db, student.id, course.id)

    def test_decisions_are_terminal(self, db, student, teacher, make_course):
        course = make_course(is_public=False)
        pending = _enroll(db, course, student)
        enrollment_service.reject_enrollment(db, pending.id, teacher.id)

        with pytest.raises(InvalidEnrollmentTransition):
            enrollment_service.approve_enrollment(db, pending.id, teacher.id)

    def test_unknown_enrollment(self, db, teacher):
        with pytest.raises(EnrollmentNotFound):
            enrollment_service.approve_enrollment(db, "missing", teacher.id)


class TestQueries:
    """Listing helpers used by the review screens."""

    def test_pending_lists(self, db, make_user, teacher, make_course):
        private = make_course(is_public=False, title="Private")
        other = make_course(is_public=False, title="Other")
        a, b, c = make_user(), make_user(), make_user()
        first = _enroll(db, private, a)
        _enroll(db, private, b)
        _enroll(db, other, c)
        enrollment_service.approve_enrollment(db, first.id, teacher.id)

        assert len(enrollment_service.get_pending_enrollments(db)) == 2
        assert [e.user_id for e in enrollment_service.get_pending_enrollments_by_course(db, private.id)] == [b.id]
        assert [e.user_id for e in enrollment_service.get_approved_enrollments_by_course(db, private.id)] == [a.id]
        assert len(enrollment_service.get_enrollments_by_course(db, private.id)) == 2

    def test_user_enrollments(self, db, student, make_course):
        first = make_course(title="One")
        second = make_course(is_public=False, title="Two")
        _enroll(db, first, student)
        _enroll(db, second, student)

        mine = enrollment_service.get_user_enrollments(db, student.id)
        assert {e.course_id for e in mine} == {first.id, second.id}
        assert enrollment_service.get_user_course_enrollment(db, student.id, second.id).status == "pending"
