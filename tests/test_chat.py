"""Tests for course chats: membership and messages."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from ead.models import CourseEnrollment
from ead.services import chat_service, enrollment_service


@pytest.fixture
def chat(db, make_course):
    course = make_course()
    return chat_service.create_course_chat(db, course.id, course.title)


def _post(db, chat, user, text):
    return chat_service.send_chat_message(db, chat.id, user.id, user.name, user.role, text)


class TestMembership:
    """Members mirror approved enrollments."""

    def test_create_seeds_approved_students(self, db, make_user, make_course):
        course = make_course(is_public=False)
        approved, waiting = make_user(), make_user()
        db.add(CourseEnrollment(course_id=course.id, user_id=approved.id, user_name=approved.name,
                                user_email=approved.email, status="approved"))
        db.add(CourseEnrollment(course_id=course.id, user_id=waiting.id, user_name=waiting.name,
                                user_email=waiting.email, status="pending"))
        db.commit()

        chat = chat_service.create_course_chat(db, course.id, course.title)

        assert chat.members == [approved.id]
        assert chat.course_name == course.title

    def test_create_is_idempotent(self, db, chat):
        again = chat_service.create_course_chat(db, chat.course_id, "Renamed")
        assert again.id == chat.id
        assert chat_service.get_chat(db, chat.id).course_name != "Renamed"

    def test_add_and_remove(self, db, chat, student):
        chat_service.add_participant_to_chat(db, chat.course_id, student.id)
        chat_service.add_participant_to_chat(db, chat.course_id, student.id)
        assert chat_service.get_chat(db, chat.id).members == [student.id]

        chat_service.remove_participant_from_chat(db, chat.course_id, student.id)
        assert not chat_service.can_user_access_chat(db, student.id, chat.course_id)

    def test_sync_resets_to_approved(self, db, chat, student, make_user):
        stray = make_user()
        chat_service.add_participant_to_chat(db, chat.course_id, stray.id)
        course_id = chat.course_id
        enrollment_service.enroll(db, course_id, student.id, student.name, student.email)

        synced = chat_service.sync_chat_members(db, course_id)

        assert synced.members == [student.id]

    def test_sync_without_chat(self, db):
        assert chat_service.sync_chat_members(db, "missing") is None

    def test_no_chat_means_no_access(self, db, student, make_course):
        course = make_course()
        assert not chat_service.can_user_access_chat(db, student.id, course.id)


class TestMessages:
    """Posting, editing and deleting."""

    def test_send_trims_text(self, db, chat, student):
        message = _post(db, chat, student, "  hello  ")

        assert message.text == "hello"
        assert message.kind == "text"
        assert message.user_role == "student"
        assert not message.edited

    def test_empty_message(self, db, chat, student):
        with pytest.raises(ValueError):
            _post(db, chat, student, "   ")

    def test_unknown_chat(self, db, student):
        with pytest.raises(ValueError):
            chat_service.send_chat_message(db, "missing", student.id, student.name, "student", "hi")

    def test_messages_listed(self, db, chat, student, teacher):
        _post(db, chat, student, "question")
        _post(db, chat, teacher, "answer")

        messages = chat_service.get_messages_by_chat(db, chat.id)
        assert {m.text for m in messages} == {"question", "answer"}

    def test_image_attachment(self, db, chat, student):
        message = chat_service.send_chat_attachment(
            db, chat.id, student.id, student.name, student.role,
            {"name": "diagram.png", "content_type": "image/png", "size": 10, "url": "/x", "blob_id": "ab" * 32},
        )

        assert message.kind == "image"
        assert message.text == "diagram.png"
        assert message.attachment["blob_id"] == "ab" * 32

    def test_file_attachment(self, db, chat, student):
        message = chat_service.send_chat_attachment(
            db, chat.id, student.id, student.name, student.role,
            {"name": "notes.pdf", "content_type": "application/pdf", "size": 10, "url": "/x"},
            text="my notes",
        )

        assert message.kind == "file"
        assert message.text == "my notes"
        assert "blob_id" not in message.attachment

    def test_edit(self, db, chat, student):
        message = _post(db, chat, student, "helo")

        edited = chat_service.edit_chat_message(db, message.id, "hello")

        assert edited.text == "hello"
        assert edited.edited
        assert edited.edited_at is not None
        assert chat_service.edit_chat_message(db, "missing", "x") is None
        with pytest.raises(ValueError):
            chat_service.edit_chat_message(db, message.id, "")

    def test_delete(self, db, chat, student):
        message_id = _post(db, chat, student, "oops").id

        assert chat_service.delete_chat_message(db, message_id)
        assert chat_service.get_message(db, message_id) is None
        assert not chat_service.delete_chat_message(db, message_id)
