"""Progress service — lesson watch time, course completion and its side effects.

Two levels are tracked:
- LessonProgress: seconds watched of one lesson by one user. Reaching the
  completion threshold marks the lesson completed, which feeds the course level.
- UserProgress: which lessons of a course the user has finished. Reaching the
  threshold completes the course exactly once (score bonus + notification).
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ead.config import settings
from ead.errors import NotFoundError
from ead.models.progress import LessonProgress, UserProgress
from ead.repositories import (
    CourseRepository,
    LessonProgressRepository,
    LessonRepository,
    UserProgressRepository,
    UserRepository,
)
from ead.services.notification_service import NotificationKind, create_notification
from ead.services.stats_service import update_user_stats

logger = logging.getLogger(__name__)


def _require_lesson(db: Session, lesson_id: str, course_id: str):
    lesson = LessonRepository(db).get(lesson_id)
    if not lesson:
        raise NotFoundError(f"Lesson {lesson_id} not found")
    if lesson.course_id != course_id:
        raise NotFoundError(f"Lesson {lesson_id} does not belong to course {course_id}")
    return lesson


def watched_percentage(watched_seconds: float, total_seconds: float) -> float:
    if total_seconds <= 0:
        return 0.0
    return watched_seconds / total_seconds * 100


def update_lesson_progress(
    db: Session,
    user_id: str,
    lesson_id: str,
    course_id: str,
    watched_seconds: float,
    total_seconds: float,
) -> LessonProgress:
    """Record playback position; watched time only ever moves forward."""
    _require_lesson(db, lesson_id, course_id)
    records = LessonProgressRepository(db)

    progress = records.get_for(user_id, lesson_id)
    if not progress:
        progress = records.put(LessonProgress(
            user_id=user_id,
            lesson_id=lesson_id,
            course_id=course_id,
            watched_seconds=0.0,
            total_seconds=total_seconds,
            watched_percentage=0.0,
            completed=False,
        ))

    progress.watched_seconds = max(progress.watched_seconds or 0.0, float(watched_seconds))
    progress.total_seconds = float(total_seconds)
    progress.watched_percentage = watched_percentage(progress.watched_seconds, progress.total_seconds)

    if progress.watched_percentage >= settings.COMPLETION_THRESHOLD_PCT and not progress.completed:
        progress.completed = True
        progress.completed_at = datetime.now(timezone.utc)
        db.flush()
        logger.info("lesson %s completed by user %s", lesson_id, user_id)
        _mark_watched(db, user_id, course_id, lesson_id)

    db.commit()
    db.refresh(progress)
    return progress


def mark_lesson_as_completed(db: Session, user_id: str, lesson_id: str, course_id: str) -> LessonProgress:
    """Force-complete a lesson regardless of watch time (non-video lessons). Idempotent."""
    _require_lesson(db, lesson_id, course_id)
    records = LessonProgressRepository(db)
    now = datetime.now(timezone.utc)

    progress = records.get_for(user_id, lesson_id)
    if not progress:
        progress = records.put(LessonProgress(
            user_id=user_id,
            lesson_id=lesson_id,
            course_id=course_id,
            watched_seconds=0.0,
            total_seconds=0.0,
            watched_percentage=100.0,
            completed=True,
            started_at=now,
            completed_at=now,
        ))
    elif not progress.completed:
        progress.completed = True
        progress.watched_percentage = 100.0
        progress.completed_at = now

    db.flush()
    _mark_watched(db, user_id, course_id, lesson_id)
    db.commit()
    db.refresh(progress)
    return progress


def mark_lesson_as_watched(db: Session, user_id: str, course_id: str, lesson_id: str) -> UserProgress:
    """Add a lesson to the user's watched set for the course and recompute."""
    progress = _mark_watched(db, user_id, course_id, lesson_id)
    db.commit()
    return progress


def _mark_watched(db: Session, user_id: str, course_id: str, lesson_id: str) -> UserProgress:
    records = UserProgressRepository(db)
    progress = records.get_for(user_id, course_id)
    if not progress:
        progress = records.put(UserProgress(
            user_id=user_id,
            course_id=course_id,
            watched_lessons=[],
            percentage=0.0,
            study_minutes=0.0,
        ))

    if lesson_id in (progress.watched_lessons or []):
        return progress

    progress.watched_lessons = [*(progress.watched_lessons or []), lesson_id]
    progress.last_lesson_id = lesson_id
    progress.percentage = _course_percentage(db, course_id, progress.watched_lessons)

    lesson = LessonRepository(db).get(lesson_id)
    if lesson:
        progress.study_minutes = (progress.study_minutes or 0) + (
            lesson.duration_minutes or settings.DEFAULT_LESSON_MINUTES
        )
    db.flush()

    check_course_completion(db, progress)
    update_user_stats(db, user_id)
    return progress


def _course_percentage(db: Session, course_id: str, watched_lessons: list[str]) -> float:
    lesson_ids = {l.id for l in LessonRepository(db).list_by_course(course_id)}
    if not lesson_ids:
        return 0.0
    watched = len(lesson_ids.intersection(watched_lessons))
    return watched / len(lesson_ids) * 100


def recompute_course_progress(db: Session, course_id: str) -> None:
    """Refresh every user's percentage after the course's lesson set changed."""
    for progress in UserProgressRepository(db).list(course_id=course_id):
        progress.percentage = _course_percentage(db, course_id, progress.watched_lessons or [])
        db.flush()
        check_course_completion(db, progress)
        update_user_stats(db, progress.user_id)


def check_course_completion(db: Session, progress: UserProgress) -> bool:
    """Fire the one-time completion side effect; returns True only when it fired.

    The guard is completed_at: once stamped, the course can never re-award.
    """
    if progress.percentage < settings.COMPLETION_THRESHOLD_PCT or progress.completed_at:
        return False

    progress.completed_at = datetime.now(timezone.utc)

    user = UserRepository(db).get_for_update(progress.user_id)
    if user:
        if progress.course_id not in (user.completed_courses or []):
            user.completed_courses = [*(user.completed_courses or []), progress.course_id]
        user.score = (user.score or 0) + settings.COURSE_COMPLETION_BONUS

    course = CourseRepository(db).get(progress.course_id)
    title = course.title if course else ""
    create_notification(
        db,
        progress.user_id,
        NotificationKind.SUCCESS,
        "Congratulations! Course Completed!",
        f'You completed the course "{title}". Keep learning!',
        link=f"/course/{progress.course_id}",
    )
    db.flush()
    logger.info("course %s completed by user %s", progress.course_id, progress.user_id)
    return True


def get_user_lesson_progress(db: Session, user_id: str, lesson_id: str) -> Optional[LessonProgress]:
    return LessonProgressRepository(db).get_for(user_id, lesson_id)


def is_lesson_completed(db: Session, user_id: str, lesson_id: str) -> bool:
    progress = LessonProgressRepository(db).get_for(user_id, lesson_id)
    return bool(progress and progress.completed)


def get_course_lesson_progress(db: Session, user_id: str, course_id: str) -> dict[str, LessonProgress]:
    """Lesson id -> progress record, for every lesson of the course the user has started."""
    records = LessonProgressRepository(db).list(user_id=user_id, course_id=course_id)
    return {r.lesson_id: r for r in records}


def get_user_progress(db: Session, user_id: str, course_id: str) -> Optional[UserProgress]:
    return UserProgressRepository(db).get_for(user_id, course_id)


def get_user_course_progress(db: Session, user_id: str) -> list[UserProgress]:
    return UserProgressRepository(db).list(user_id=user_id)
