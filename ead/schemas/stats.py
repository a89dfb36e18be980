"""Dashboard stats schemas."""

from pydantic import BaseModel


class UserStatsResponse(BaseModel):
    completed_courses: int
    in_progress_courses: int
    study_hours: float
    score: int
    average_percentage: int
    streak_days: int


class PlatformStatsResponse(BaseModel):
    total_courses: int
    total_students: int
    total_lessons: int
    content_hours: float
    completed_course_runs: int
    total_enrollments: int
    average_rating: float
