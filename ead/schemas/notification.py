"""Notification response schemas."""

from typing import Optional
from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    kind: str
    read: bool
    link: Optional[str] = None
    created_at: str

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    unread: int
