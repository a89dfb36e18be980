"""SQLAlchemy ORM models."""

from ead.models.user import User
from ead.models.course import Course, Lesson, Material
from ead.models.enrollment import CourseEnrollment
from ead.models.progress import LessonProgress, UserProgress
from ead.models.engagement import LessonComment, LessonCommentReply, CourseRating, EngagementLike
from ead.models.chat import CourseChat, ChatMessage
from ead.models.notification import Notification

__all__ = [
    "User",
    "Course",
    "Lesson",
    "Material",
    "CourseEnrollment",
    "LessonProgress",
    "UserProgress",
    "LessonComment",
    "LessonCommentReply",
    "CourseRating",
    "EngagementLike",
    "CourseChat",
    "ChatMessage",
    "Notification",
]
