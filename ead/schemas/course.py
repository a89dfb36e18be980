"""Course, lesson and material request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class CourseCreate(BaseModel):
    title: str
    description: str = ""
    is_public: bool = True
    category: str = "General"
    level: str = "beginner"
    tags: list[str] = []
    price: float = 0.0
    thumbnail: Optional[str] = None


class CourseUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None
    category: Optional[str] = None
    level: Optional[str] = None
    tags: Optional[list[str]] = None
    price: Optional[float] = None
    thumbnail: Optional[str] = None
    active: Optional[bool] = None


class CourseResponse(BaseModel):
    id: str
    owner_id: str
    owner_name: str
    title: str
    description: str
    thumbnail: Optional[str] = None
    category: str
    level: str
    tags: list[str]
    price: float
    is_public: bool
    active: bool
    estimated_minutes: int
    student_count: int
    average_rating: float
    rating_count: int
    lessons_count: int = 0
    created_at: str

    class Config:
        from_attributes = True


class CourseListResponse(BaseModel):
    courses: list[CourseResponse]
    total: int


class MaterialCreate(BaseModel):
    """Link materials; file materials go through the upload endpoint."""
    name: str
    url: str


class MaterialResponse(BaseModel):
    id: str
    lesson_id: str
    name: str
    kind: str
    content: str
    size: Optional[int] = None
    created_at: str

    class Config:
        from_attributes = True


class LessonCreate(BaseModel):
    title: str
    description: str = ""
    duration_minutes: Optional[int] = None


class LessonUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    position: Optional[int] = None
    duration_minutes: Optional[int] = None
    active: Optional[bool] = None


class LessonResponse(BaseModel):
    id: str
    course_id: str
    title: str
    description: str
    position: int
    video_blob_id: Optional[str] = None
    video_name: Optional[str] = None
    duration_minutes: int
    active: bool
    materials: list[MaterialResponse] = []
    created_at: str

    class Config:
        from_attributes = True


class LessonListResponse(BaseModel):
    lessons: list[LessonResponse]
    total: int
