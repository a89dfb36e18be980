"""Tests for lesson watch-time tracking and course completion."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from ead.errors import NotFoundError
from ead.models import Notification, User
from ead.services import catalog_service, enrollment_service, progress_service

COMPLETED_TITLE = "Congratulations! Course Completed!"


def _lessons(db, course):
    return catalog_service.get_lessons_by_course(db, course.id)


def _watch_fully(db, user, lesson, minutes):
    seconds = minutes * 60
    return progress_service.update_lesson_progress(db, user.id, lesson.id, lesson.course_id, seconds, seconds)


class TestCompletionScenario:
    """Private course, two lessons, request/approve, then watch both lessons."""

    def test_full_flow(self, db, student, teacher, make_course):
        course = make_course(is_public=False, lessons=(10, 20))
        first, second = _lessons(db, course)

        pending = enrollment_service.enroll(db, course.id, student.id, student.name, student.email)
        assert pending.status == "pending"
        enrollment_service.approve_enrollment(db, pending.id, teacher.id)
        assert enrollment_service.is_user_enrolled_in_course(db, student.id, course.id)

        _watch_fully(db, student, first, 10)
        progress = progress_service.get_user_progress(db, student.id, course.id)
        assert progress.percentage == 50
        assert progress.completed_at is None
        db.refresh(student)
        assert student.completed_courses == []
        assert student.in_progress_courses == [course.id]

        _watch_fully(db, student, second, 20)
        progress = progress_service.get_user_progress(db, student.id, course.id)
        assert progress.percentage == 100
        assert progress.completed_at is not None

        user = db.get(User, student.id)
        assert user.completed_courses == [course.id]
        assert user.in_progress_courses == []
        assert user.score == 100
        assert user.study_minutes == 30

        sent = db.query(Notification).filter_by(user_id=student.id, title=COMPLETED_TITLE).all()
        assert len(sent) == 1
        assert sent[0].kind == "success"
        assert sent[0].link == f"/course/{course.id}"


class TestLessonProgress:
    """Per-lesson watch time."""

    def test_watched_seconds_never_decrease(self, db, student, make_course):
        course = make_course(lessons=(10,))
        lesson = _lessons(db, course)[0]

        progress_service.update_lesson_progress(db, student.id, lesson.id, course.id, 300, 600)
        record = progress_service.update_lesson_progress(db, student.id, lesson.id, course.id, 120, 600)

        assert record.watched_seconds == 300
        assert record.watched_percentage == 50
        assert not record.completed

    def test_threshold_completes_lesson(self, db, student, make_course):
        course = make_course(lessons=(10,))
        lesson = _lessons(db, course)[0]

        record = progress_service.update_lesson_progress(db, student.id, lesson.id, course.id, 540, 600)

        assert record.completed
        assert record.completed_at is not None
        assert progress_service.is_lesson_completed(db, student.id, lesson.id)
        progress = progress_service.get_user_progress(db, student.id, course.id)
        assert progress.watched_lessons == [lesson.id]

    def test_below_threshold_does_not_complete(self, db, student, make_course):
        course = make_course(lessons=(10,))
        lesson = _lessons(db, course)[0]

        record = progress_service.update_lesson_progress(db, student.id, lesson.id, course.id, 530, 600)

        assert not record.completed
        assert progress_service.get_user_progress(db, student.id, course.id) is None

    def test_zero_length_lesson(self, db, student, make_course):
        course = make_course(lessons=(10,))
        lesson = _lessons(db, course)[0]

        record = progress_service.update_lesson_progress(db, student.id, lesson.id, course.id, 0, 0)

        assert record.watched_percentage == 0
        assert not record.completed

    def test_lesson_from_other_course(self, db, student, make_course):
        course = make_course(lessons=(10,))
        other = make_course(title="Other", lessons=(5,))
        lesson = _lessons(db, other)[0]

        with pytest.raises(NotFoundError):
            progress_service.update_lesson_progress(db, student.id, lesson.id, course.id, 10, 10)

    def test_course_lesson_progress_map(self, db, student, make_course):
        course = make_course(lessons=(10, 10))
        first, second = _lessons(db, course)
        progress_service.update_lesson_progress(db, student.id, first.id, course.id, 60, 600)

        records = progress_service.get_course_lesson_progress(db, student.id, course.id)
        assert set(records) == {first.id}
        assert progress_service.get_user_lesson_progress(db, student.id, second.id) is None


class TestMarkCompleted:
    """Forced completion for lessons without a video."""

    def test_double_completion_is_idempotent(self, db, student, make_course):
        course = make_course(lessons=(10,))
        lesson = _lessons(db, course)[0]

        progress_service.mark_lesson_as_completed(db, student.id, lesson.id, course.id)
        record = progress_service.mark_lesson_as_completed(db, student.id, lesson.id, course.id)

        assert record.completed
        progress = progress_service.get_user_progress(db, student.id, course.id)
        assert progress.watched_lessons == [lesson.id]
        user = db.get(User, student.id)
        assert user.completed_courses == [course.id]
        assert user.score == 100
        assert db.query(Notification).filter_by(user_id=student.id, title=COMPLETED_TITLE).count() == 1

    def test_mark_watched_twice_counts_minutes_once(self, db, student, make_course):
        course = make_course(lessons=(10, 10, 10))
        lesson = _lessons(db, course)[0]

        progress_service.mark_lesson_as_watched(db, student.id, course.id, lesson.id)
        progress = progress_service.mark_lesson_as_watched(db, student.id, course.id, lesson.id)

        assert progress.study_minutes == 10
        assert progress.percentage == pytest.approx(100 / 3)
        assert progress.last_lesson_id == lesson.id


class TestLessonSetChanges:
    """Percentages follow the active lesson set."""

    def test_new_lesson_lowers_percentage(self, db, student, make_course):
        course = make_course(lessons=(10, 10, 10, 10))
        lessons = _lessons(db, course)
        for lesson in lessons[:2]:
            progress_service.mark_lesson_as_completed(db, student.id, lesson.id, course.id)

        catalog_service.create_lesson(db, course.id, "Bonus", duration_minutes=5)

        progress = progress_service.get_user_progress(db, student.id, course.id)
        assert progress.percentage == pytest.approx(40)

    def test_completion_is_not_revoked(self, db, student, make_course):
        course = make_course(lessons=(10,))
        lesson = _lessons(db, course)[0]
        progress_service.mark_lesson_as_completed(db, student.id, lesson.id, course.id)

        catalog_service.create_lesson(db, course.id, "Appendix")

        progress = progress_service.get_user_progress(db, student.id, course.id)
        assert progress.percentage == 50
        assert progress.completed_at is not None
        assert db.get(User, student.id).completed_courses == [course.id]

    def test_deactivated_lesson_excluded(self, db, student, make_course):
        course = make_course(lessons=(10, 10))
        first, second = _lessons(db, course)
        progress_service.mark_lesson_as_completed(db, student.id, first.id, course.id)

        catalog_service.update_lesson(db, second.id, {"active": False})

        progress = progress_service.get_user_progress(db, student.id, course.id)
        assert progress.percentage == 100
        assert progress.completed_at is not None
