"""Progress router — lesson watch time, completion and course progress."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.models.course import Lesson
from ead.models.progress import LessonProgress, UserProgress
from ead.schemas.progress import LessonProgressUpdate, LessonProgressResponse, CourseProgressResponse
from ead.middleware.auth import get_current_user, ensure_course_access
from ead.services import catalog_service, progress_service

router = APIRouter(prefix="/api/progress", tags=["progress"])


def _lesson_progress_to_response(progress: LessonProgress) -> LessonProgressResponse:
    return LessonProgressResponse(
        id=progress.id,
        user_id=progress.user_id,
        lesson_id=progress.lesson_id,
        course_id=progress.course_id,
        watched_seconds=progress.watched_seconds,
        total_seconds=progress.total_seconds,
        watched_percentage=progress.watched_percentage,
        completed=progress.completed,
        started_at=progress.started_at.isoformat(),
        completed_at=progress.completed_at.isoformat() if progress.completed_at else None,
    )


def _course_progress_to_response(progress: UserProgress, lessons: list[LessonProgress]) -> CourseProgressResponse:
    return CourseProgressResponse(
        id=progress.id,
        user_id=progress.user_id,
        course_id=progress.course_id,
        watched_lessons=list(progress.watched_lessons or []),
        percentage=progress.percentage or 0.0,
        study_minutes=progress.study_minutes or 0.0,
        last_lesson_id=progress.last_lesson_id,
        started_at=progress.started_at.isoformat(),
        completed_at=progress.completed_at.isoformat() if progress.completed_at else None,
        self_rating=progress.self_rating,
        self_comment=progress.self_comment,
        lessons=[_lesson_progress_to_response(p) for p in lessons],
    )


def _accessible_lesson(db: Session, lesson_id: str, user: User) -> Lesson:
    lesson = catalog_service.get_lesson(db, lesson_id)
    if not lesson or not lesson.active:
        raise HTTPException(status_code=404, detail="Lesson not found")
    ensure_course_access(db, user, lesson.course)
    return lesson


@router.put("/lessons/{lesson_id}", response_model=LessonProgressResponse)
def update_lesson_progress(
    lesson_id: str,
    req: LessonProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Report the player position; completion triggers once the threshold is crossed."""
    lesson = _accessible_lesson(db, lesson_id, current_user)
    progress = progress_service.update_lesson_progress(
        db,
        user_id=current_user.id,
        lesson_id=lesson.id,
        course_id=lesson.course_id,
        watched_seconds=req.watched_seconds,
        total_seconds=req.total_seconds,
    )
    return _lesson_progress_to_response(progress)


@router.post("/lessons/{lesson_id}/complete", response_model=LessonProgressResponse)
def complete_lesson(
    lesson_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    lesson = _accessible_lesson(db, lesson_id, current_user)
    progress = progress_service.mark_lesson_as_completed(db, current_user.id, lesson.id, lesson.course_id)
    return _lesson_progress_to_response(progress)


@router.get("/courses/{course_id}", response_model=CourseProgressResponse)
def course_progress(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    progress = progress_service.get_user_progress(db, current_user.id, course_id)
    if not progress:
        raise HTTPException(status_code=404, detail="No progress for this course yet")
    lessons = progress_service.get_course_lesson_progress(db, current_user.id, course_id)
    return _course_progress_to_response(progress, list(lessons.values()))


@router.get("/me", response_model=list[CourseProgressResponse])
def my_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [
        _course_progress_to_response(p, [])
        for p in progress_service.get_user_course_progress(db, current_user.id)
    ]
