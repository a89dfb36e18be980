"""Course chat request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class ChatResponse(BaseModel):
    id: str
    course_id: str
    course_name: str
    members: list[str]
    active: bool
    created_at: str

    class Config:
        from_attributes = True


class MessageCreate(BaseModel):
    text: str


class MessageUpdate(BaseModel):
    text: str


class AttachmentInfo(BaseModel):
    name: str
    content_type: str
    size: int
    url: str
    blob_id: Optional[str] = None


class MessageResponse(BaseModel):
    id: str
    chat_id: str
    user_id: str
    user_name: str
    user_avatar: Optional[str] = None
    user_role: str
    text: str
    kind: str
    attachment: Optional[AttachmentInfo] = None
    edited: bool
    edited_at: Optional[str] = None
    created_at: str


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
    total: int
