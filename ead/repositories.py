"""Per-entity repositories over a SQLAlchemy session.

Services never build queries against the ORM classes directly; they go through
one of these, so the storage behind an entity type can be swapped without
touching engine logic.
"""

from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.orm import Session

from ead.models import (
    User,
    Course,
    Lesson,
    Material,
    CourseEnrollment,
    LessonProgress,
    UserProgress,
    LessonComment,
    LessonCommentReply,
    CourseRating,
    EngagementLike,
    CourseChat,
    ChatMessage,
    Notification,
)

T = TypeVar("T")


class Repository(Generic[T]):
    model: type

    def __init__(self, db: Session):
        self.db = db

    def get(self, entity_id: str) -> Optional[T]:
        if not entity_id:
            return None
        return self.db.get(self.model, entity_id)

    def find(self, **filters: Any) -> Optional[T]:
        return self.db.query(self.model).filter_by(**filters).first()

    def list(self, order_by=None, **filters: Any) -> list[T]:
        qs = self.db.query(self.model).filter_by(**filters)
        if order_by is not None:
            qs = qs.order_by(order_by)
        return qs.all()

    def count(self, **filters: Any) -> int:
        return self.db.query(self.model).filter_by(**filters).count()

    def put(self, entity: T) -> T:
        self.db.add(entity)
        self.db.flush()
        return entity

    def delete(self, entity: T) -> None:
        self.db.delete(entity)
        self.db.flush()

    def delete_where(self, *criteria) -> int:
        """Bulk delete; returns the number of rows removed."""
        return self.db.query(self.model).filter(*criteria).delete(synchronize_session="fetch")


class UserRepository(Repository[User]):
    model = User

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def get_for_update(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).with_for_update().first()


class CourseRepository(Repository[Course]):
    model = Course

    def list_courses(self, active_only: bool = True, owner_id: Optional[str] = None) -> list[Course]:
        qs = self.db.query(Course)
        if active_only:
            qs = qs.filter(Course.active.is_(True))
        if owner_id:
            qs = qs.filter(Course.owner_id == owner_id)
        return qs.order_by(Course.created_at.desc()).all()


class LessonRepository(Repository[Lesson]):
    model = Lesson

    def list_by_course(self, course_id: str, active_only: bool = True) -> list[Lesson]:
        qs = self.db.query(Lesson).filter(Lesson.course_id == course_id)
        if active_only:
            qs = qs.filter(Lesson.active.is_(True))
        return qs.order_by(Lesson.position, Lesson.created_at).all()


class MaterialRepository(Repository[Material]):
    model = Material


class EnrollmentRepository(Repository[CourseEnrollment]):
    model = CourseEnrollment

    def get_for(self, user_id: str, course_id: str) -> Optional[CourseEnrollment]:
        return self.find(user_id=user_id, course_id=course_id)

    def list_by(self, **filters: Any) -> list[CourseEnrollment]:
        return self.list(order_by=CourseEnrollment.requested_at.desc(), **filters)


class LessonProgressRepository(Repository[LessonProgress]):
    model = LessonProgress

    def get_for(self, user_id: str, lesson_id: str) -> Optional[LessonProgress]:
        return self.find(user_id=user_id, lesson_id=lesson_id)


class UserProgressRepository(Repository[UserProgress]):
    model = UserProgress

    def get_for(self, user_id: str, course_id: str) -> Optional[UserProgress]:
        return self.find(user_id=user_id, course_id=course_id)


class CommentRepository(Repository[LessonComment]):
    model = LessonComment

    def list_by_lesson(self, lesson_id: str) -> list[LessonComment]:
        return (
            self.db.query(LessonComment)
            .filter(LessonComment.lesson_id == lesson_id)
            .order_by(LessonComment.created_at.desc())
            .all()
        )


class ReplyRepository(Repository[LessonCommentReply]):
    model = LessonCommentReply


class RatingRepository(Repository[CourseRating]):
    model = CourseRating

    def list_by_course(self, course_id: str) -> list[CourseRating]:
        return (
            self.db.query(CourseRating)
            .filter(CourseRating.course_id == course_id)
            .order_by(CourseRating.created_at.desc())
            .all()
        )


class LikeRepository(Repository[EngagementLike]):
    model = EngagementLike

    def liked_targets(self, target_type: str, target_ids: list[str], user_id: str) -> set[str]:
        if not target_ids or not user_id:
            return set()
        rows = (
            self.db.query(EngagementLike.target_id)
            .filter(
                EngagementLike.target_type == target_type,
                EngagementLike.target_id.in_(target_ids),
                EngagementLike.user_id == user_id,
            )
            .all()
        )
        return {r[0] for r in rows}


class ChatRepository(Repository[CourseChat]):
    model = CourseChat

    def get_by_course(self, course_id: str) -> Optional[CourseChat]:
        return self.find(course_id=course_id)


class ChatMessageRepository(Repository[ChatMessage]):
    model = ChatMessage

    def list_by_chat(self, chat_id: str) -> list[ChatMessage]:
        return self.list(order_by=ChatMessage.created_at, chat_id=chat_id)


class NotificationRepository(Repository[Notification]):
    model = Notification

    def list_by_user(self, user_id: str) -> list[Notification]:
        return self.list(order_by=Notification.created_at.desc(), user_id=user_id)
