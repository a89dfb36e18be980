"""Shared fixtures: an in-memory database per test plus user and course factories."""

import itertools
import os
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from ead.database import Base
from ead.models import User
from ead.services import catalog_service


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Insert users directly; registration (and bcrypt) is covered in test_identity."""
    counter = itertools.count(1)

    def _make(role: str = "student", name: str = None) -> User:
        n = next(counter)
        user = User(
            email=f"{role}{n}@example.com",
            password_hash="not-a-real-hash",
            role=role,
            name=name or f"{role.title()} {n}",
            completed_courses=[],
            in_progress_courses=[],
            study_minutes=0.0,
            score=0,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", name="Ada Teacher")


@pytest.fixture
def student(make_user):
    return make_user("student", name="Sam Student")


@pytest.fixture
def admin(make_user):
    return make_user("admin", name="Root Admin")


@pytest.fixture
def make_course(db, teacher):
    """Create a course owned by `teacher` with one lesson per entry in `lessons` (minutes)."""

    def _make(is_public: bool = True, title: str = "Python 101", lessons=(), owner=None, **fields):
        course = catalog_service.create_course(
            db, (owner or teacher).id, title, is_public=is_public, **fields
        )
        for i, minutes in enumerate(lessons, start=1):
            catalog_service.create_lesson(db, course.id, f"Lesson {i}", duration_minutes=minutes)
        db.refresh(course)
        return course

    return _make
