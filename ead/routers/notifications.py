"""Notifications router — the current user's notification log."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.models.notification import Notification
from ead.schemas.notification import NotificationResponse, NotificationListResponse
from ead.middleware.auth import get_current_user
from ead.services import notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _notification_to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        title=notification.title,
        message=notification.message or "",
        kind=notification.kind,
        read=notification.read,
        link=notification.link,
        created_at=notification.created_at.isoformat(),
    )


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notifications = notification_service.get_user_notifications(db, current_user.id, unread_only=unread_only)
    return NotificationListResponse(
        notifications=[_notification_to_response(n) for n in notifications],
        total=len(notifications),
        unread=notification_service.get_unread_notifications_count(db, current_user.id),
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = db.get(Notification, notification_id)
    if not notification or notification.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    return _notification_to_response(notification_service.mark_notification_as_read(db, notification_id))


@router.post("/read-all")
def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"updated": notification_service.mark_all_as_read(db, current_user.id)}
