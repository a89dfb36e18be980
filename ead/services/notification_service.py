"""Notification service — per-user append-only log with read state."""

import enum
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ead.models.notification import Notification
from ead.repositories import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def create_notification(
    db: Session,
    user_id: str,
    kind: NotificationKind,
    title: str,
    message: str = "",
    link: Optional[str] = None,
) -> Notification:
    """Append a notification. Flushed, not committed: the caller owns the transaction."""
    notification = Notification(
        user_id=user_id,
        kind=NotificationKind(kind).value,
        title=title,
        message=message,
        link=link,
        read=False,
    )
    NotificationRepository(db).put(notification)
    logger.debug("notification %s (%s) -> user %s", title, notification.kind, user_id)
    return notification


def get_user_notifications(db: Session, user_id: str, unread_only: bool = False) -> list[Notification]:
    notifications = NotificationRepository(db).list_by_user(user_id)
    if unread_only:
        return [n for n in notifications if not n.read]
    return notifications


def get_unread_notifications_count(db: Session, user_id: str) -> int:
    return NotificationRepository(db).count(user_id=user_id, read=False)


def mark_notification_as_read(db: Session, notification_id: str) -> Optional[Notification]:
    notification = NotificationRepository(db).get(notification_id)
    if not notification:
        return None
    notification.read = True
    db.commit()
    return notification


def mark_all_as_read(db: Session, user_id: str) -> int:
    """Mark every unread notification of a user as read; returns how many changed."""
    unread = get_user_notifications(db, user_id, unread_only=True)
    for n in unread:
        n.read = True
    db.commit()
    return len(unread)
