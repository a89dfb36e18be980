"""Auth and user request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class RegisterRequest(BaseModel):
    email: str
    password: str
    role: str = "student"  # student | teacher (admins are promoted by an admin)
    name: str
    nickname: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    nickname: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    birth_date: Optional[str] = None


class RoleUpdate(BaseModel):
    role: str


class UserResponse(BaseModel):
    id: str
    email: str
    role: str
    name: str
    nickname: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    active: bool
    completed_courses: list[str]
    in_progress_courses: list[str]
    study_minutes: float
    score: int
    created_at: str

    class Config:
        from_attributes = True
