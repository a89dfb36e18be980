"""Stats service — full recomputation of cached user and course aggregates.

Every function here recomputes from source records rather than patching the
cached value, so calling them redundantly is always safe.
"""

import logging
import math
from datetime import datetime, timezone, timedelta

from sqlalchemy.orm import Session

from ead.config import settings
from ead.models.course import Course, Lesson
from ead.models.engagement import CourseRating
from ead.models.enrollment import CourseEnrollment
from ead.models.progress import UserProgress
from ead.models.user import User
from ead.repositories import (
    CourseRepository,
    EnrollmentRepository,
    LessonProgressRepository,
    LessonRepository,
    RatingRepository,
    UserProgressRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

STREAK_WINDOW_DAYS = 7
MAX_STREAK_DAYS = 30


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def average_rating(scores: list[int]) -> dict:
    """Mean rounded to one decimal; {0, 0} for no scores."""
    if not scores:
        return {"average": 0, "total": 0}
    return {
        "average": math.floor(sum(scores) / len(scores) * 10 + 0.5) / 10,
        "total": len(scores),
    }


def update_user_stats(db: Session, user_id: str) -> None:
    """Recompute the in-progress list and study minutes of a user."""
    user = UserRepository(db).get(user_id)
    if not user:
        return

    db.flush()
    progress = UserProgressRepository(db).list(user_id=user_id)
    completed = set(user.completed_courses or [])
    threshold = settings.COMPLETION_THRESHOLD_PCT

    user.in_progress_courses = [
        p.course_id for p in progress
        if 0 < p.percentage < threshold and p.course_id not in completed
    ]
    user.study_minutes = float(sum(p.study_minutes or 0 for p in progress))
    db.flush()


def update_course_stats(db: Session, course_id: str) -> None:
    """Recompute student count, estimated duration and rating aggregates.

    Students are counted from approved enrollments; ratings come from the
    course rating records.
    """
    course = CourseRepository(db).get(course_id)
    if not course:
        return

    db.flush()
    lessons = LessonRepository(db).list_by_course(course_id)
    course.estimated_minutes = sum(
        (l.duration_minutes or settings.DEFAULT_LESSON_MINUTES) for l in lessons
    )
    course.student_count = EnrollmentRepository(db).count(course_id=course_id, status="approved")

    ratings = average_rating([r.score for r in RatingRepository(db).list_by_course(course_id)])
    course.average_rating = ratings["average"]
    course.rating_count = ratings["total"]
    db.flush()


def calculate_streak_days(db: Session, user_id: str) -> int:
    """Courses touched in the last week, capped at MAX_STREAK_DAYS."""
    since = datetime.now(timezone.utc) - timedelta(days=STREAK_WINDOW_DAYS)
    progress = UserProgressRepository(db).list(user_id=user_id)
    recent = 0
    for p in progress:
        last_activity = p.started_at
        if p.last_lesson_id:
            # a watched lesson has a completed LessonProgress; fall back to start
            lp = LessonProgressRepository(db).get_for(user_id, p.last_lesson_id)
            if lp and lp.completed_at:
                last_activity = lp.completed_at
        if last_activity and _as_utc(last_activity) >= since:
            recent += 1
    return min(recent, MAX_STREAK_DAYS)


def get_user_stats(db: Session, user_id: str) -> dict:
    user = UserRepository(db).get(user_id)
    if not user:
        return {
            "completed_courses": 0,
            "in_progress_courses": 0,
            "study_hours": 0.0,
            "score": 0,
            "average_percentage": 0,
            "streak_days": 0,
        }

    progress = UserProgressRepository(db).list(user_id=user_id)
    mean_pct = sum(p.percentage for p in progress) / len(progress) if progress else 0

    return {
        "completed_courses": len(user.completed_courses or []),
        "in_progress_courses": len(user.in_progress_courses or []),
        "study_hours": round((user.study_minutes or 0) / 60, 1),
        "score": user.score or 0,
        "average_percentage": round(mean_pct),
        "streak_days": calculate_streak_days(db, user_id),
    }


def get_platform_stats(db: Session) -> dict:
    """Catalog-wide dashboard numbers."""
    active_lessons = (
        db.query(Lesson)
        .join(Course, Lesson.course_id == Course.id)
        .filter(Lesson.active.is_(True), Course.active.is_(True))
        .all()
    )
    content_minutes = sum((l.duration_minutes or settings.DEFAULT_LESSON_MINUTES) for l in active_lessons)
    scores = [r.score for r in db.query(CourseRating).all()]

    return {
        "total_courses": db.query(Course).filter(Course.active.is_(True)).count(),
        "total_students": db.query(User).filter(User.role == "student", User.active.is_(True)).count(),
        "total_lessons": len(active_lessons),
        "content_hours": round(content_minutes / 60, 1),
        "completed_course_runs": db.query(UserProgress).filter(UserProgress.completed_at.isnot(None)).count(),
        "total_enrollments": db.query(CourseEnrollment).filter(CourseEnrollment.status == "approved").count(),
        "average_rating": average_rating(scores)["average"],
    }
