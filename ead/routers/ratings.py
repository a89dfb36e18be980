"""Ratings router — course reviews and their likes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.models.engagement import CourseRating
from ead.schemas.engagement import RatingCreate, RatingResponse, RatingListResponse, LikeResponse
from ead.middleware.auth import get_current_user, ensure_course_access
from ead.services import catalog_service, engagement_service

router = APIRouter(prefix="/api/ratings", tags=["ratings"])


def _rating_to_response(rating: CourseRating, liked: bool = False) -> RatingResponse:
    return RatingResponse(
        id=rating.id,
        course_id=rating.course_id,
        user_id=rating.user_id,
        user_name=rating.user_name,
        user_avatar=rating.user_avatar,
        score=rating.score,
        text=rating.text or "",
        likes=rating.likes,
        liked=liked,
        created_at=rating.created_at.isoformat(),
    )


@router.get("/courses/{course_id}", response_model=RatingListResponse)
def list_ratings(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Public reviews for a course, newest first."""
    entries = engagement_service.get_ratings_by_course(db, course_id, viewer_id=current_user.id)
    summary = engagement_service.get_course_average_rating(db, course_id)
    return RatingListResponse(
        ratings=[_rating_to_response(e["rating"], e["liked"]) for e in entries],
        average=summary["average"],
        total=summary["total"],
    )


@router.get("/courses/{course_id}/me", response_model=RatingResponse)
def my_rating(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rating = engagement_service.get_user_course_rating(db, course_id, current_user.id)
    if not rating:
        raise HTTPException(status_code=404, detail="You have not rated this course")
    return _rating_to_response(rating)


@router.post("/courses/{course_id}", response_model=RatingResponse)
def rate_course(
    course_id: str,
    req: RatingCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create or replace the current user's rating; enrolled students only."""
    course = catalog_service.get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    ensure_course_access(db, current_user, course)
    rating = engagement_service.create_course_rating(
        db,
        course_id=course_id,
        user_id=current_user.id,
        user_name=current_user.name,
        score=req.score,
        text=req.text,
        user_avatar=current_user.avatar,
    )
    return _rating_to_response(rating)


@router.post("/{rating_id}/like", response_model=LikeResponse)
def like_rating(
    rating_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rating = db.get(CourseRating, rating_id)
    course = catalog_service.get_course(db, rating.course_id) if rating else None
    if not course:
        raise HTTPException(status_code=404, detail="Rating not found")
    ensure_course_access(db, current_user, course)

    liked = engagement_service.toggle_rating_like(db, rating_id, current_user.id)
    db.refresh(rating)
    return LikeResponse(liked=liked, likes=rating.likes)
