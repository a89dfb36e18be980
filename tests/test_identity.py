"""Tests for registration, authentication and the default admin."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from ead.config import settings
from ead.errors import DuplicateEmail, InvalidCredential, NotFoundError
from ead.models import Notification
from ead.services import identity_service


class TestValidation:
    """Input checks that run before touching the database."""

    def test_email(self):
        assert identity_service.validate_email("ana@example.com")
        assert not identity_service.validate_email("ana@example")
        assert not identity_service.validate_email("ana example@x.com")

    def test_password(self):
        ok, message = identity_service.validate_password("12345")
        assert not ok
        assert "6" in message
        assert identity_service.validate_password("123456") == (True, "")


class TestRegistration:
    """Account creation."""

    def test_register_normalizes_email(self, db):
        user = identity_service.register_user(db, "Ana", "  Ana@Example.COM ", "secret1")

        assert user.email == "ana@example.com"
        assert user.role == "student"
        assert user.nickname == "Ana"
        assert user.password_hash != "secret1"
        assert user.completed_courses == []
        assert user.score == 0

    def test_welcome_notification(self, db):
        user = identity_service.register_user(db, "Ana", "ana@example.com", "secret1")

        notes = db.query(Notification).filter_by(user_id=user.id).all()
        assert [n.title for n in notes] == ["Welcome to EAD!"]
        assert notes[0].kind == "success"

    def test_duplicate_email(self, db):
        identity_service.register_user(db, "Ana", "ana@example.com", "secret1")
        with pytest.raises(DuplicateEmail):
            identity_service.register_user(db, "Other Ana", "ANA@example.com", "secret2")

    @pytest.mark.parametrize(
        "email,password,role",
        [("bad-email", "secret1", "student"), ("ana@example.com", "123", "student"),
         ("ana@example.com", "secret1", "janitor")],
    )
    def test_invalid_input(self, db, email, password, role):
        with pytest.raises(ValueError):
            identity_service.register_user(db, "Ana", email, password, role=role)


class TestAuthentication:
    """Credential checks."""

    def test_authenticate(self, db):
        user = identity_service.register_user(db, "Ana", "ana@example.com", "secret1")

        found = identity_service.authenticate(db, "ANA@example.com", "secret1")

        assert found.id == user.id
        assert found.last_login_at is not None

    def test_wrong_password(self, db):
        identity_service.register_user(db, "Ana", "ana@example.com", "secret1")
        with pytest.raises(InvalidCredential):
            identity_service.authenticate(db, "ana@example.com", "wrong-pass")

    def test_unknown_email(self, db):
        with pytest.raises(InvalidCredential):
            identity_service.authenticate(db, "nobody@example.com", "secret1")

    def test_deactivated_user(self, db):
        user = identity_service.register_user(db, "Ana", "ana@example.com", "secret1")
        assert identity_service.deactivate_user(db, user.id)

        with pytest.raises(InvalidCredential):
            identity_service.authenticate(db, "ana@example.com", "secret1")
        assert identity_service.find_user_by_email(db, "ana@example.com") is None


class TestProfiles:
    """Profile edits and administration."""

    def test_update_profile(self, db, student):
        updated = identity_service.update_user_profile(
            db, student.id, {"bio": "Learner", "role": "admin", "score": 999}
        )

        assert updated.bio == "Learner"
        assert updated.role == "student"
        assert updated.score == 0
        assert identity_service.update_user_profile(db, "missing", {"bio": "x"}) is None

    def test_change_role(self, db, student):
        assert identity_service.change_role(db, student.id, "teacher").role == "teacher"
        with pytest.raises(ValueError):
            identity_service.change_role(db, student.id, "owner")
        with pytest.raises(NotFoundError):
            identity_service.change_role(db, "missing", "teacher")

    def test_list_users(self, db, make_user):
        make_user("teacher", name="Grace Hopper")
        make_user("student", name="Alan Turing")

        assert [u.name for u in identity_service.list_users(db, role="teacher")] == ["Grace Hopper"]
        assert [u.name for u in identity_service.list_users(db, q="turing")] == ["Alan Turing"]


class TestDefaultAdmin:
    """Seeding on an empty user table."""

    def test_seeds_once(self, db):
        admin = identity_service.ensure_default_admin(db)

        assert admin.role == "admin"
        assert admin.email == settings.DEFAULT_ADMIN_EMAIL
        assert identity_service.ensure_default_admin(db) is None

    def test_skipped_when_users_exist(self, db, student):
        assert identity_service.ensure_default_admin(db) is None
