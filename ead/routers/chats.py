"""Chats router — per-course chat channel for enrolled students and staff."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ead.database import get_db
from ead.models.user import User
from ead.models.chat import CourseChat, ChatMessage
from ead.schemas.chat import (
    ChatResponse,
    MessageCreate,
    MessageUpdate,
    MessageResponse,
    MessageListResponse,
    AttachmentInfo,
)
from ead.middleware.auth import get_current_user, can_manage_course
from ead.services import catalog_service, chat_service
from ead.services.blob_store import BlobStore, get_blob_store
from ead.services.upload_service import store_upload, release_blobs

router = APIRouter(prefix="/api/chats", tags=["chats"])


def _chat_to_response(chat: CourseChat) -> ChatResponse:
    return ChatResponse(
        id=chat.id,
        course_id=chat.course_id,
        course_name=chat.course_name,
        members=list(chat.members or []),
        active=chat.active,
        created_at=chat.created_at.isoformat(),
    )


def _message_to_response(message: ChatMessage) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        chat_id=message.chat_id,
        user_id=message.user_id,
        user_name=message.user_name,
        user_avatar=message.user_avatar,
        user_role=message.user_role,
        text=message.text,
        kind=message.kind,
        attachment=AttachmentInfo(**message.attachment) if message.attachment else None,
        edited=message.edited,
        edited_at=message.edited_at.isoformat() if message.edited_at else None,
        created_at=message.created_at.isoformat(),
    )


def _open_chat(db: Session, course_id: str, user: User) -> CourseChat:
    """The course chat if the user may use it; owners and admins create it on first visit."""
    course = catalog_service.get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    if can_manage_course(user, course):
        return chat_service.create_course_chat(db, course_id, course.title)
    if not chat_service.can_user_access_chat(db, user.id, course_id):
        raise HTTPException(status_code=403, detail="You are not a member of this chat")
    return chat_service.get_chat_by_course(db, course_id)


def _own_message(db: Session, message_id: str, user: User) -> ChatMessage:
    message = chat_service.get_message(db, message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.user_id != user.id:
        chat = chat_service.get_chat(db, message.chat_id)
        course = catalog_service.get_course(db, chat.course_id) if chat else None
        if not course or not can_manage_course(user, course):
            raise HTTPException(status_code=403, detail="Not your message")
    return message


@router.get("/courses/{course_id}", response_model=ChatResponse)
def get_chat(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _chat_to_response(_open_chat(db, course_id, current_user))


@router.post("/courses/{course_id}/sync", response_model=ChatResponse)
def sync_members(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rebuild membership from the approved enrollments."""
    course = catalog_service.get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    if not can_manage_course(current_user, course):
        raise HTTPException(status_code=403, detail="Not your course")
    chat_service.create_course_chat(db, course_id, course.title)
    return _chat_to_response(chat_service.sync_chat_members(db, course_id))


@router.get("/courses/{course_id}/messages", response_model=MessageListResponse)
def list_messages(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = _open_chat(db, course_id, current_user)
    messages = chat_service.get_messages_by_chat(db, chat.id)
    return MessageListResponse(
        messages=[_message_to_response(m) for m in messages],
        total=len(messages),
    )


@router.post("/courses/{course_id}/messages", response_model=MessageResponse, status_code=201)
def send_message(
    course_id: str,
    req: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = _open_chat(db, course_id, current_user)
    message = chat_service.send_chat_message(
        db, chat.id, current_user.id, current_user.name, current_user.role, req.text,
        avatar=current_user.avatar,
    )
    return _message_to_response(message)


@router.post("/courses/{course_id}/attachments", response_model=MessageResponse, status_code=201)
async def send_attachment(
    course_id: str,
    file: UploadFile = File(...),
    text: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    chat = _open_chat(db, course_id, current_user)
    content = await file.read()
    blob_id = await store_upload(store, content, "material")
    message = chat_service.send_chat_attachment(
        db, chat.id, current_user.id, current_user.name, current_user.role,
        {
            "name": file.filename or "file",
            "content_type": file.content_type or "application/octet-stream",
            "size": len(content),
            "url": "",
            "blob_id": blob_id,
        },
        text=text or "",
        avatar=current_user.avatar,
    )
    # the download URL needs the message id
    message.attachment = {**message.attachment, "url": f"/api/chats/messages/{message.id}/attachment"}
    db.commit()
    return _message_to_response(message)


@router.get("/messages/{message_id}/attachment")
async def download_attachment(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    message = chat_service.get_message(db, message_id)
    if not message or not message.attachment or not message.attachment.get("blob_id"):
        raise HTTPException(status_code=404, detail="Attachment not found")
    chat = chat_service.get_chat(db, message.chat_id)
    _open_chat(db, chat.course_id, current_user)

    data = await store.get(message.attachment["blob_id"])
    if data is None:
        raise HTTPException(status_code=404, detail="Attachment not found")
    return Response(content=data, media_type=message.attachment.get("content_type") or "application/octet-stream")


@router.put("/messages/{message_id}", response_model=MessageResponse)
def edit_message(
    message_id: str,
    req: MessageUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = chat_service.get_message(db, message_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not your message")
    return _message_to_response(chat_service.edit_chat_message(db, message_id, req.text))


@router.delete("/messages/{message_id}", status_code=204)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
):
    """Authors delete their own messages; course owners and admins moderate."""
    message = _own_message(db, message_id, current_user)
    blob_id = (message.attachment or {}).get("blob_id")
    chat_service.delete_chat_message(db, message_id)
    if blob_id:
        await release_blobs(db, store, [blob_id])
