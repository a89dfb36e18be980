"""Auth router — registration, login, profile and user administration."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    TokenResponse,
    ProfileUpdate,
    RoleUpdate,
    UserResponse,
)
from ead.middleware.auth import create_access_token, get_current_user, require_admin
from ead.services import identity_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        name=user.name,
        nickname=user.nickname,
        avatar=user.avatar,
        bio=user.bio,
        active=user.active,
        completed_courses=list(user.completed_courses or []),
        in_progress_courses=list(user.in_progress_courses or []),
        study_minutes=user.study_minutes or 0.0,
        score=user.score or 0,
        created_at=user.created_at.isoformat(),
    )


@router.post("/register", response_model=UserResponse, status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user."""
    if req.role not in ("student", "teacher"):
        raise HTTPException(status_code=400, detail="Role must be 'student' or 'teacher'")
    user = identity_service.register_user(
        db,
        name=req.name,
        email=req.email,
        password=req.password,
        role=req.role,
        nickname=req.nickname,
        phone=req.phone,
    )
    return _user_to_response(user)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    """Login and receive a JWT token."""
    user = identity_service.authenticate(db, req.email, req.password)
    token = create_access_token({"sub": user.id, "role": user.role})
    return TokenResponse(access_token=token)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return _user_to_response(current_user)


@router.put("/me", response_model=UserResponse)
def update_me(
    req: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = identity_service.update_user_profile(db, current_user.id, req.model_dump(exclude_unset=True))
    return _user_to_response(user)


# ── Administration ───────────────────────────────────────────────────────────


@router.get("/users", response_model=list[UserResponse])
def list_users(
    role: Optional[str] = None,
    q: str = "",
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return [_user_to_response(u) for u in identity_service.list_users(db, role=role, q=q)]


@router.put("/users/{user_id}/role", response_model=UserResponse)
def change_role(
    user_id: str,
    req: RoleUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _user_to_response(identity_service.change_role(db, user_id, req.role))


@router.delete("/users/{user_id}", status_code=204)
def deactivate_user(
    user_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    if not identity_service.deactivate_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
