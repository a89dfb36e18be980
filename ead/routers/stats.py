"""Stats router — learner dashboard and platform numbers."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.schemas.stats import UserStatsResponse, PlatformStatsResponse
from ead.middleware.auth import get_current_user, require_admin
from ead.services import identity_service, stats_service

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/me", response_model=UserStatsResponse)
def my_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return UserStatsResponse(**stats_service.get_user_stats(db, current_user.id))


@router.get("/users/{user_id}", response_model=UserStatsResponse)
def user_stats(
    user_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not identity_service.get_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return UserStatsResponse(**stats_service.get_user_stats(db, user_id))


@router.get("/platform", response_model=PlatformStatsResponse)
def platform_stats(db: Session = Depends(get_db)):
    """Public landing-page numbers."""
    return PlatformStatsResponse(**stats_service.get_platform_stats(db))
