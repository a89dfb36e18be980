"""Chat service — one chat channel per course, membership mirrors approved enrollments."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ead.errors import InvalidInput, NotFoundError
from ead.models.chat import CourseChat, ChatMessage
from ead.repositories import ChatRepository, ChatMessageRepository, CourseRepository, EnrollmentRepository

logger = logging.getLogger(__name__)

MESSAGE_KINDS = ("text", "file", "image")


def _approved_member_ids(db: Session, course_id: str) -> list[str]:
    enrollments = EnrollmentRepository(db).list_by(course_id=course_id, status="approved")
    return sorted({e.user_id for e in enrollments})


def get_chat_by_course(db: Session, course_id: str) -> Optional[CourseChat]:
    return ChatRepository(db).get_by_course(course_id)


def get_chat(db: Session, chat_id: str) -> Optional[CourseChat]:
    return ChatRepository(db).get(chat_id)


def ensure_course_chat(db: Session, course_id: str, course_name: str) -> CourseChat:
    """Flush-only variant of create_course_chat for use inside other transactions."""
    chats = ChatRepository(db)
    existing = chats.get_by_course(course_id)
    if existing:
        return existing

    chat = CourseChat(
        course_id=course_id,
        course_name=course_name,
        members=_approved_member_ids(db, course_id),
        active=True,
    )
    chats.put(chat)
    logger.info("created chat %s for course %s with %d members", chat.id, course_id, len(chat.members))
    return chat


def create_course_chat(db: Session, course_id: str, course_name: str) -> CourseChat:
    """Return the course's chat, creating it seeded with approved students if absent."""
    chat = ensure_course_chat(db, course_id, course_name)
    db.commit()
    return chat


def add_participant_to_chat(db: Session, course_id: str, user_id: str) -> Optional[CourseChat]:
    chat = ChatRepository(db).get_by_course(course_id)
    if chat and user_id not in (chat.members or []):
        chat.members = [*(chat.members or []), user_id]
        db.flush()
    return chat


def remove_participant_from_chat(db: Session, course_id: str, user_id: str) -> Optional[CourseChat]:
    chat = ChatRepository(db).get_by_course(course_id)
    if chat and user_id in (chat.members or []):
        chat.members = [m for m in chat.members if m != user_id]
        db.flush()
    return chat


def sync_chat_members(db: Session, course_id: str) -> Optional[CourseChat]:
    """Reset membership to exactly the approved enrollments of the course."""
    chat = ChatRepository(db).get_by_course(course_id)
    if not chat:
        return None
    chat.members = _approved_member_ids(db, course_id)
    db.commit()
    return chat


def add_enrolled_user(db: Session, course_id: str, user_id: str) -> Optional[CourseChat]:
    """Called on enrollment approval: make sure the chat exists and holds the user."""
    course = CourseRepository(db).get(course_id)
    if not course:
        return None
    chat = ensure_course_chat(db, course_id, course.title)
    return add_participant_to_chat(db, chat.course_id, user_id)


def can_user_access_chat(db: Session, user_id: str, course_id: str) -> bool:
    chat = ChatRepository(db).get_by_course(course_id)
    return bool(chat and user_id in (chat.members or []))


def get_messages_by_chat(db: Session, chat_id: str) -> list[ChatMessage]:
    """Messages oldest first."""
    return ChatMessageRepository(db).list_by_chat(chat_id)


def send_chat_message(
    db: Session,
    chat_id: str,
    user_id: str,
    user_name: str,
    role: str,
    text: str,
    avatar: Optional[str] = None,
) -> ChatMessage:
    """Post a text message. Membership is checked by the caller via can_user_access_chat."""
    text = (text or "").strip()
    if not text:
        raise InvalidInput("Message cannot be empty")
    return _store_message(db, chat_id, user_id, user_name, role, text, avatar, kind="text")


def send_chat_attachment(
    db: Session,
    chat_id: str,
    user_id: str,
    user_name: str,
    role: str,
    attachment: dict,
    text: str = "",
    avatar: Optional[str] = None,
) -> ChatMessage:
    """Post a file or image message; `attachment` is {name, content_type, size, url[, blob_id]}."""
    content_type = attachment.get("content_type") or ""
    kind = "image" if content_type.startswith("image/") else "file"
    descriptor = {
        "name": attachment.get("name", ""),
        "content_type": content_type,
        "size": int(attachment.get("size") or 0),
        "url": attachment.get("url", ""),
    }
    if attachment.get("blob_id"):
        descriptor["blob_id"] = attachment["blob_id"]
    return _store_message(
        db, chat_id, user_id, user_name, role,
        (text or "").strip() or descriptor["name"], avatar,
        kind=kind, attachment=descriptor,
    )


def _store_message(db, chat_id, user_id, user_name, role, text, avatar, kind, attachment=None) -> ChatMessage:
    if not ChatRepository(db).get(chat_id):
        raise NotFoundError("Chat not found")
    message = ChatMessage(
        chat_id=chat_id,
        user_id=user_id,
        user_name=user_name,
        user_avatar=avatar,
        user_role=role,
        text=text,
        kind=kind,
        attachment=attachment,
    )
    ChatMessageRepository(db).put(message)
    db.commit()
    db.refresh(message)
    return message


def get_message(db: Session, message_id: str) -> Optional[ChatMessage]:
    return ChatMessageRepository(db).get(message_id)


def edit_chat_message(db: Session, message_id: str, new_text: str) -> Optional[ChatMessage]:
    """Replace the text in place; no edit history is kept."""
    message = ChatMessageRepository(db).get(message_id)
    if not message:
        return None
    new_text = (new_text or "").strip()
    if not new_text:
        raise InvalidInput("Message cannot be empty")
    message.text = new_text
    message.edited = True
    message.edited_at = datetime.now(timezone.utc)
    db.commit()
    return message


def delete_chat_message(db: Session, message_id: str) -> bool:
    messages = ChatMessageRepository(db)
    message = messages.get(message_id)
    if not message:
        return False
    messages.delete(message)
    db.commit()
    return True
