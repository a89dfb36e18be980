"""Comment and rating request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class CommentCreate(BaseModel):
    text: str


class ReplyResponse(BaseModel):
    id: str
    comment_id: str
    user_id: str
    user_name: str
    user_avatar: Optional[str] = None
    text: str
    likes: int
    liked: bool = False
    created_at: str


class CommentResponse(BaseModel):
    id: str
    lesson_id: str
    user_id: str
    user_name: str
    user_avatar: Optional[str] = None
    text: str
    likes: int
    liked: bool = False
    replies: list[ReplyResponse] = []
    created_at: str


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    total: int


class RatingCreate(BaseModel):
    score: int
    text: str = ""


class RatingResponse(BaseModel):
    id: str
    course_id: str
    user_id: str
    user_name: str
    user_avatar: Optional[str] = None
    score: int
    text: str
    likes: int
    liked: bool = False
    created_at: str


class RatingListResponse(BaseModel):
    ratings: list[RatingResponse]
    average: float
    total: int


class LikeResponse(BaseModel):
    liked: bool
    likes: int
