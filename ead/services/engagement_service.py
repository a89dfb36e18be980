"""Engagement service — lesson comments and replies, course ratings, likes."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ead.errors import InvalidInput, InvalidRating, NotFoundError
from ead.models.engagement import CourseRating, EngagementLike, LessonComment, LessonCommentReply
from ead.repositories import (
    CommentRepository,
    CourseRepository,
    LessonRepository,
    LikeRepository,
    RatingRepository,
    ReplyRepository,
    UserProgressRepository,
)
from ead.services.stats_service import average_rating, update_course_stats

logger = logging.getLogger(__name__)


def _toggle_like(db: Session, target, target_type: str, user_id: str) -> bool:
    """Flip the viewer's like on target; returns the new liked state."""
    likes = LikeRepository(db)
    existing = likes.find(target_type=target_type, target_id=target.id, user_id=user_id)
    if existing:
        likes.delete(existing)
        target.likes = max(0, (target.likes or 0) - 1)
        liked = False
    else:
        likes.put(EngagementLike(target_type=target_type, target_id=target.id, user_id=user_id))
        target.likes = (target.likes or 0) + 1
        liked = True
    db.commit()
    return liked


# ── Comments ─────────────────────────────────────────────────────────────────


def create_lesson_comment(
    db: Session,
    lesson_id: str,
    user_id: str,
    user_name: str,
    text: str,
    user_avatar: Optional[str] = None,
) -> LessonComment:
    if not LessonRepository(db).get(lesson_id):
        raise NotFoundError("Lesson not found")
    text = (text or "").strip()
    if not text:
        raise InvalidInput("Comment cannot be empty")

    comment = LessonComment(
        lesson_id=lesson_id,
        user_id=user_id,
        user_name=user_name,
        user_avatar=user_avatar,
        text=text,
        likes=0,
    )
    CommentRepository(db).put(comment)
    db.commit()
    db.refresh(comment)
    return comment


def reply_to_comment(
    db: Session,
    comment_id: str,
    user_id: str,
    user_name: str,
    text: str,
    user_avatar: Optional[str] = None,
) -> LessonCommentReply:
    comment = CommentRepository(db).get(comment_id)
    if not comment:
        raise NotFoundError("Comment not found")
    text = (text or "").strip()
    if not text:
        raise InvalidInput("Reply cannot be empty")

    reply = LessonCommentReply(
        user_id=user_id,
        user_name=user_name,
        user_avatar=user_avatar,
        text=text,
        likes=0,
    )
    comment.replies.append(reply)
    db.commit()
    db.refresh(reply)
    return reply


def get_comment(db: Session, comment_id: str) -> Optional[LessonComment]:
    return CommentRepository(db).get(comment_id)


def get_comments_by_lesson(db: Session, lesson_id: str, viewer_id: Optional[str] = None) -> list[dict]:
    """Comments newest first, replies oldest first, each with the viewer's liked flag."""
    comments = CommentRepository(db).list_by_lesson(lesson_id)
    likes = LikeRepository(db)
    liked_comments = likes.liked_targets("comment", [c.id for c in comments], viewer_id)
    reply_ids = [r.id for c in comments for r in c.replies]
    liked_replies = likes.liked_targets("reply", reply_ids, viewer_id)

    return [
        {
            "comment": c,
            "liked": c.id in liked_comments,
            "replies": [{"reply": r, "liked": r.id in liked_replies} for r in c.replies],
        }
        for c in comments
    ]


def delete_lesson_comment(db: Session, comment_id: str) -> bool:
    comments = CommentRepository(db)
    comment = comments.get(comment_id)
    if not comment:
        return False
    likes = LikeRepository(db)
    reply_ids = [r.id for r in comment.replies]
    likes.delete_where(EngagementLike.target_type == "comment", EngagementLike.target_id == comment_id)
    if reply_ids:
        likes.delete_where(EngagementLike.target_type == "reply", EngagementLike.target_id.in_(reply_ids))
    comments.delete(comment)
    db.commit()
    return True


def toggle_comment_like(db: Session, comment_id: str, user_id: str) -> Optional[bool]:
    comment = CommentRepository(db).get(comment_id)
    if not comment:
        return None
    return _toggle_like(db, comment, "comment", user_id)


def toggle_reply_like(db: Session, comment_id: str, reply_id: str, user_id: str) -> Optional[bool]:
    reply = ReplyRepository(db).get(reply_id)
    if not reply or reply.comment_id != comment_id:
        return None
    return _toggle_like(db, reply, "reply", user_id)


# ── Ratings ──────────────────────────────────────────────────────────────────


def _check_score(score) -> int:
    if isinstance(score, bool) or not isinstance(score, int) or not 1 <= score <= 5:
        raise InvalidRating("Rating must be an integer from 1 to 5")
    return score


def create_course_rating(
    db: Session,
    course_id: str,
    user_id: str,
    user_name: str,
    score: int,
    text: str = "",
    user_avatar: Optional[str] = None,
) -> CourseRating:
    """Rate a course; a second rating by the same user overwrites the first."""
    score = _check_score(score)
    if not CourseRepository(db).get(course_id):
        raise NotFoundError("Course not found")

    ratings = RatingRepository(db)
    rating = ratings.find(course_id=course_id, user_id=user_id)
    if rating:
        rating.score = score
        rating.text = (text or "").strip()
        rating.created_at = datetime.now(timezone.utc)
        db.flush()
    else:
        rating = ratings.put(CourseRating(
            course_id=course_id,
            user_id=user_id,
            user_name=user_name,
            user_avatar=user_avatar,
            score=score,
            text=(text or "").strip(),
            likes=0,
        ))

    progress = UserProgressRepository(db).get_for(user_id, course_id)
    if progress:
        progress.self_rating = score
        progress.self_comment = rating.text

    update_course_stats(db, course_id)
    db.commit()
    db.refresh(rating)
    logger.info("course %s rated %d by %s", course_id, score, user_id)
    return rating


def get_ratings_by_course(db: Session, course_id: str, viewer_id: Optional[str] = None) -> list[dict]:
    """Ratings newest first with the viewer's liked flag."""
    ratings = RatingRepository(db).list_by_course(course_id)
    liked = LikeRepository(db).liked_targets("rating", [r.id for r in ratings], viewer_id)
    return [{"rating": r, "liked": r.id in liked} for r in ratings]


def get_user_course_rating(db: Session, course_id: str, user_id: str) -> Optional[CourseRating]:
    return RatingRepository(db).find(course_id=course_id, user_id=user_id)


def get_course_average_rating(db: Session, course_id: str) -> dict:
    return average_rating([r.score for r in RatingRepository(db).list_by_course(course_id)])


def toggle_rating_like(db: Session, rating_id: str, user_id: str) -> Optional[bool]:
    rating = RatingRepository(db).get(rating_id)
    if not rating:
        return None
    return _toggle_like(db, rating, "rating", user_id)
