"""Tests for the notification log."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from ead.services import notification_service
from ead.services.notification_service import NotificationKind


class TestNotifications:
    """Append, read state, counts."""

    def test_create_and_list(self, db, student):
        notification_service.create_notification(
            db, student.id, NotificationKind.WARNING, "Heads up", "Details", link="/course/1"
        )
        db.commit()

        notes = notification_service.get_user_notifications(db, student.id)
        assert len(notes) == 1
        assert notes[0].kind == "warning"
        assert notes[0].link == "/course/1"
        assert not notes[0].read

    def test_kind_accepts_plain_string(self, db, student):
        notification = notification_service.create_notification(db, student.id, "error", "Oops")
        assert notification.kind == "error"

    def test_unknown_kind(self, db, student):
        with pytest.raises(ValueError):
            notification_service.create_notification(db, student.id, "celebration", "Yay")

    def test_read_state(self, db, student, make_user):
        other = make_user()
        for title in ("one", "two", "three"):
            notification_service.create_notification(db, student.id, NotificationKind.INFO, title)
        notification_service.create_notification(db, other.id, NotificationKind.INFO, "theirs")
        db.commit()

        first = notification_service.get_user_notifications(db, student.id)[0]
        notification_service.mark_notification_as_read(db, first.id)

        assert notification_service.get_unread_notifications_count(db, student.id) == 2
        assert len(notification_service.get_user_notifications(db, student.id, unread_only=True)) == 2
        assert notification_service.mark_all_as_read(db, student.id) == 2
        assert notification_service.get_unread_notifications_count(db, student.id) == 0
        assert notification_service.get_unread_notifications_count(db, other.id) == 1

    def test_mark_missing(self, db):
        assert notification_service.mark_notification_as_read(db, "missing") is None
