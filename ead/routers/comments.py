"""Comments router — lesson discussion threads with replies and likes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.models.course import Lesson
from ead.schemas.engagement import (
    CommentCreate,
    CommentResponse,
    CommentListResponse,
    ReplyResponse,
    LikeResponse,
)
from ead.middleware.auth import get_current_user, ensure_course_access, can_manage_course
from ead.services import catalog_service, engagement_service

router = APIRouter(prefix="/api/comments", tags=["comments"])


def _reply_to_response(reply, liked: bool = False) -> ReplyResponse:
    return ReplyResponse(
        id=reply.id,
        comment_id=reply.comment_id,
        user_id=reply.user_id,
        user_name=reply.user_name,
        user_avatar=reply.user_avatar,
        text=reply.text,
        likes=reply.likes,
        liked=liked,
        created_at=reply.created_at.isoformat(),
    )


def _comment_to_response(entry: dict) -> CommentResponse:
    comment = entry["comment"]
    return CommentResponse(
        id=comment.id,
        lesson_id=comment.lesson_id,
        user_id=comment.user_id,
        user_name=comment.user_name,
        user_avatar=comment.user_avatar,
        text=comment.text,
        likes=comment.likes,
        liked=entry["liked"],
        replies=[_reply_to_response(r["reply"], r["liked"]) for r in entry["replies"]],
        created_at=comment.created_at.isoformat(),
    )


def _accessible_lesson(db: Session, lesson_id: str, user: User) -> Lesson:
    lesson = catalog_service.get_lesson(db, lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    ensure_course_access(db, user, lesson.course)
    return lesson


def _accessible_comment(db: Session, comment_id: str, user: User):
    comment = engagement_service.get_comment(db, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    _accessible_lesson(db, comment.lesson_id, user)
    return comment


@router.get("/lessons/{lesson_id}", response_model=CommentListResponse)
def list_comments(
    lesson_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _accessible_lesson(db, lesson_id, current_user)
    entries = engagement_service.get_comments_by_lesson(db, lesson_id, viewer_id=current_user.id)
    return CommentListResponse(
        comments=[_comment_to_response(e) for e in entries],
        total=len(entries),
    )


@router.post("/lessons/{lesson_id}", response_model=CommentResponse, status_code=201)
def create_comment(
    lesson_id: str,
    req: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _accessible_lesson(db, lesson_id, current_user)
    comment = engagement_service.create_lesson_comment(
        db, lesson_id, current_user.id, current_user.name, req.text, user_avatar=current_user.avatar
    )
    return _comment_to_response({"comment": comment, "liked": False, "replies": []})


@router.post("/{comment_id}/replies", response_model=ReplyResponse, status_code=201)
def reply(
    comment_id: str,
    req: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _accessible_comment(db, comment_id, current_user)
    created = engagement_service.reply_to_comment(
        db, comment_id, current_user.id, current_user.name, req.text, user_avatar=current_user.avatar
    )
    return _reply_to_response(created)


@router.post("/{comment_id}/like", response_model=LikeResponse)
def like_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comment = _accessible_comment(db, comment_id, current_user)
    liked = engagement_service.toggle_comment_like(db, comment_id, current_user.id)
    return LikeResponse(liked=liked, likes=comment.likes)


@router.post("/{comment_id}/replies/{reply_id}/like", response_model=LikeResponse)
def like_reply(
    comment_id: str,
    reply_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    comment = _accessible_comment(db, comment_id, current_user)
    liked = engagement_service.toggle_reply_like(db, comment_id, reply_id, current_user.id)
    if liked is None:
        raise HTTPException(status_code=404, detail="Reply not found")
    target = next(r for r in comment.replies if r.id == reply_id)
    return LikeResponse(liked=liked, likes=target.likes)


@router.delete("/{comment_id}", status_code=204)
def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Authors delete their own comments; course owners and admins moderate."""
    comment = engagement_service.get_comment(db, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    lesson = catalog_service.get_lesson(db, comment.lesson_id)
    if comment.user_id != current_user.id and not (lesson and can_manage_course(current_user, lesson.course)):
        raise HTTPException(status_code=403, detail="You cannot delete this comment")
    engagement_service.delete_lesson_comment(db, comment_id)
