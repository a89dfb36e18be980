"""Progress request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class LessonProgressUpdate(BaseModel):
    watched_seconds: float
    total_seconds: float


class LessonProgressResponse(BaseModel):
    id: str
    user_id: str
    lesson_id: str
    course_id: str
    watched_seconds: float
    total_seconds: float
    watched_percentage: float
    completed: bool
    started_at: str
    completed_at: Optional[str] = None

    class Config:
        from_attributes = True


class CourseProgressResponse(BaseModel):
    id: str
    user_id: str
    course_id: str
    watched_lessons: list[str]
    percentage: float
    study_minutes: float
    last_lesson_id: Optional[str] = None
    started_at: str
    completed_at: Optional[str] = None
    self_rating: Optional[int] = None
    self_comment: Optional[str] = None
    lessons: list[LessonProgressResponse] = []

    class Config:
        from_attributes = True
