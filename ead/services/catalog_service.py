"""Catalog service — courses, lessons and materials, with cascade deletes."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ead.config import settings
from ead.errors import InvalidInput, NotFoundError
from ead.models.chat import ChatMessage
from ead.models.course import Course, Lesson, Material
from ead.models.engagement import CourseRating, EngagementLike, LessonComment, LessonCommentReply
from ead.models.enrollment import CourseEnrollment
from ead.models.progress import LessonProgress, UserProgress
from ead.repositories import (
    ChatRepository,
    CommentRepository,
    CourseRepository,
    EnrollmentRepository,
    LessonProgressRepository,
    LessonRepository,
    LikeRepository,
    MaterialRepository,
    RatingRepository,
    ReplyRepository,
    UserProgressRepository,
    UserRepository,
)
from ead.services.progress_service import recompute_course_progress
from ead.services.stats_service import update_course_stats, update_user_stats

logger = logging.getLogger(__name__)

LEVELS = ("beginner", "intermediate", "advanced")
MATERIAL_KINDS = ("pdf", "image", "link", "video", "other")

COURSE_FIELDS = (
    "title", "description", "thumbnail", "category", "level", "tags",
    "price", "is_public", "active",
)
LESSON_FIELDS = (
    "title", "description", "position", "video_blob_id", "video_name",
    "duration_minutes", "active",
)


def _check_level(level: Optional[str]) -> None:
    if level is not None and level not in LEVELS:
        raise InvalidInput(f"Level must be one of {', '.join(LEVELS)}")


# ── Courses ──────────────────────────────────────────────────────────────────


def create_course(
    db: Session,
    owner_id: str,
    title: str,
    description: str = "",
    is_public: bool = True,
    category: str = "General",
    level: str = "beginner",
    tags: Optional[list[str]] = None,
    price: float = 0.0,
    thumbnail: Optional[str] = None,
) -> Course:
    owner = UserRepository(db).get(owner_id)
    if not owner:
        raise NotFoundError("Course owner not found")
    if not (title or "").strip():
        raise InvalidInput("Course title is required")
    _check_level(level)

    course = Course(
        owner_id=owner.id,
        owner_name=owner.name,
        title=title.strip(),
        description=(description or "").strip(),
        is_public=is_public,
        category=category or "General",
        level=level,
        tags=list(tags or []),
        price=float(price or 0),
        thumbnail=thumbnail,
        active=True,
    )
    CourseRepository(db).put(course)
    db.commit()
    db.refresh(course)
    logger.info("course %s created by %s (public=%s)", course.id, owner_id, is_public)
    return course


def get_course(db: Session, course_id: str) -> Optional[Course]:
    return CourseRepository(db).get(course_id)


def list_courses(db: Session, active_only: bool = True, owner_id: Optional[str] = None) -> list[Course]:
    return CourseRepository(db).list_courses(active_only=active_only, owner_id=owner_id)


def update_course(db: Session, course_id: str, updates: dict) -> Course:
    course = CourseRepository(db).get(course_id)
    if not course:
        raise NotFoundError("Course not found")
    _check_level(updates.get("level"))
    for field in COURSE_FIELDS:
        if field in updates and updates[field] is not None:
            setattr(course, field, updates[field])
    db.commit()
    db.refresh(course)
    return course


def delete_course(db: Session, course_id: str) -> list[str]:
    """Delete a course and everything that references it.

    Returns the blob ids it referenced (lesson videos, uploaded materials,
    chat attachments) so the caller can release them from the blob store.
    """
    course = CourseRepository(db).get(course_id)
    if not course:
        return []

    lessons = LessonRepository(db).list_by_course(course_id, active_only=False)
    lesson_ids = [l.id for l in lessons]
    blob_ids = _lesson_blob_ids(lessons)

    _delete_lesson_comments(db, lesson_ids)

    ratings = RatingRepository(db)
    rating_ids = [r.id for r in ratings.list_by_course(course_id)]
    if rating_ids:
        LikeRepository(db).delete_where(
            EngagementLike.target_type == "rating", EngagementLike.target_id.in_(rating_ids)
        )
    ratings.delete_where(CourseRating.course_id == course_id)

    affected_users = {p.user_id for p in UserProgressRepository(db).list(course_id=course_id)}
    LessonProgressRepository(db).delete_where(LessonProgress.course_id == course_id)
    UserProgressRepository(db).delete_where(UserProgress.course_id == course_id)
    EnrollmentRepository(db).delete_where(CourseEnrollment.course_id == course_id)

    chat = ChatRepository(db).get_by_course(course_id)
    if chat:
        for message in chat.messages:
            blob_id = (message.attachment or {}).get("blob_id")
            if blob_id and blob_id not in blob_ids:
                blob_ids.append(blob_id)
        ChatRepository(db).delete(chat)

    # lessons and their materials go with the course
    CourseRepository(db).delete(course)

    for user_id in affected_users:
        user = UserRepository(db).get(user_id)
        if user and course_id in (user.completed_courses or []):
            user.completed_courses = [c for c in user.completed_courses if c != course_id]
        update_user_stats(db, user_id)

    db.commit()
    logger.info(
        "deleted course %s with %d lessons; %d blobs released",
        course_id, len(lesson_ids), len(blob_ids),
    )
    return blob_ids


def _lesson_blob_ids(lessons: list[Lesson]) -> list[str]:
    blob_ids = []
    for lesson in lessons:
        if lesson.video_blob_id:
            blob_ids.append(lesson.video_blob_id)
        for material in lesson.materials:
            if material.kind != "link":
                blob_ids.append(material.content)
    return blob_ids


def _delete_lesson_comments(db: Session, lesson_ids: list[str]) -> None:
    if not lesson_ids:
        return
    comments = db.query(LessonComment).filter(LessonComment.lesson_id.in_(lesson_ids)).all()
    comment_ids = [c.id for c in comments]
    if not comment_ids:
        return
    reply_ids = [
        r.id for r in db.query(LessonCommentReply).filter(LessonCommentReply.comment_id.in_(comment_ids)).all()
    ]
    likes = LikeRepository(db)
    likes.delete_where(EngagementLike.target_type == "comment", EngagementLike.target_id.in_(comment_ids))
    if reply_ids:
        likes.delete_where(EngagementLike.target_type == "reply", EngagementLike.target_id.in_(reply_ids))
    for comment in comments:
        # ORM delete so replies cascade
        CommentRepository(db).delete(comment)


# ── Lessons ──────────────────────────────────────────────────────────────────


def create_lesson(
    db: Session,
    course_id: str,
    title: str,
    description: str = "",
    duration_minutes: Optional[int] = None,
    video_blob_id: Optional[str] = None,
    video_name: Optional[str] = None,
) -> Lesson:
    """Append a lesson at position existing_count + 1."""
    course = CourseRepository(db).get(course_id)
    if not course:
        raise NotFoundError("Course not found")
    if not (title or "").strip():
        raise InvalidInput("Lesson title is required")

    lessons = LessonRepository(db)
    existing = lessons.count(course_id=course_id)
    lesson = Lesson(
        course_id=course_id,
        title=title.strip(),
        description=(description or "").strip(),
        position=existing + 1,
        duration_minutes=duration_minutes or settings.DEFAULT_LESSON_MINUTES,
        video_blob_id=video_blob_id,
        video_name=video_name,
        active=True,
    )
    lessons.put(lesson)
    update_course_stats(db, course_id)
    recompute_course_progress(db, course_id)
    db.commit()
    db.refresh(lesson)
    return lesson


def get_lesson(db: Session, lesson_id: str) -> Optional[Lesson]:
    return LessonRepository(db).get(lesson_id)


def get_lessons_by_course(db: Session, course_id: str) -> list[Lesson]:
    """Active lessons ordered by position."""
    return LessonRepository(db).list_by_course(course_id)


def update_lesson(db: Session, lesson_id: str, updates: dict) -> Lesson:
    lesson = LessonRepository(db).get(lesson_id)
    if not lesson:
        raise NotFoundError("Lesson not found")
    toggled = "active" in updates and updates["active"] is not None and updates["active"] != lesson.active
    for field in LESSON_FIELDS:
        if field in updates and updates[field] is not None:
            setattr(lesson, field, updates[field])
    db.flush()
    update_course_stats(db, lesson.course_id)
    if toggled:
        recompute_course_progress(db, lesson.course_id)
    db.commit()
    db.refresh(lesson)
    return lesson


def delete_lesson(db: Session, lesson_id: str) -> list[str]:
    """Delete a lesson; remaining positions keep their gaps. Returns released blob ids."""
    lesson = LessonRepository(db).get(lesson_id)
    if not lesson:
        return []
    course_id = lesson.course_id
    blob_ids = _lesson_blob_ids([lesson])

    _delete_lesson_comments(db, [lesson_id])
    LessonProgressRepository(db).delete_where(LessonProgress.lesson_id == lesson_id)
    for progress in UserProgressRepository(db).list(course_id=course_id):
        if lesson_id in (progress.watched_lessons or []):
            progress.watched_lessons = [l for l in progress.watched_lessons if l != lesson_id]
            if progress.last_lesson_id == lesson_id:
                progress.last_lesson_id = progress.watched_lessons[-1] if progress.watched_lessons else None

    LessonRepository(db).delete(lesson)
    update_course_stats(db, course_id)
    recompute_course_progress(db, course_id)
    db.commit()
    logger.info("deleted lesson %s from course %s", lesson_id, course_id)
    return blob_ids


# ── Materials ────────────────────────────────────────────────────────────────


def add_material(
    db: Session,
    lesson_id: str,
    name: str,
    kind: str,
    content: str,
    size: Optional[int] = None,
) -> Material:
    """Attach a material; `content` is a URL for links and a blob id otherwise."""
    if kind not in MATERIAL_KINDS:
        raise InvalidInput(f"Material kind must be one of {', '.join(MATERIAL_KINDS)}")
    if not LessonRepository(db).get(lesson_id):
        raise NotFoundError("Lesson not found")
    if not content:
        raise InvalidInput("Material content is required")

    material = Material(lesson_id=lesson_id, name=(name or "").strip() or kind, kind=kind,
                        content=content, size=size)
    MaterialRepository(db).put(material)
    db.commit()
    db.refresh(material)
    return material


def remove_material(db: Session, material_id: str) -> Optional[str]:
    """Remove a material; returns its blob id when one should be released."""
    materials = MaterialRepository(db)
    material = materials.get(material_id)
    if not material:
        return None
    blob_id = material.content if material.kind != "link" else None
    materials.delete(material)
    db.commit()
    return blob_id


def blob_in_use(db: Session, blob_id: str) -> bool:
    """Blobs are content-addressed, so two records can share one; only release unreferenced ids."""
    if LessonRepository(db).count(video_blob_id=blob_id):
        return True
    if db.query(Material).filter(Material.kind != "link", Material.content == blob_id).count():
        return True
    attachments = db.query(ChatMessage).filter(ChatMessage.kind != "text").all()
    return any((m.attachment or {}).get("blob_id") == blob_id for m in attachments)
