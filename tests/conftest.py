import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.dirname(CURRENT_DIR)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from learning_service.config import settings
from learning_service.infrastructure.db import enable_sqlite_foreign_keys
from learning_service.infrastructure.models import Base, Course, Lesson, Section

# in-memory DB, one shared connection for every TestClient thread
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(test_engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db():
    """Fresh schema and session for every test"""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def course_factory(db):
    """Build a course from a layout like ``[["L1", "L2"], ["L3"]]``.

    Each inner list is a section; strings are lesson titles. Returns the
    course row with ``lesson_ids`` and ``section_ids`` attached in order.
    """
    def _make(layout, title="Python Basics", preview_first=False):
        course = Course(title=title, description=f"{title} description")
        db.add(course)
        db.flush()
        section_ids, lesson_ids = [], []
        for s_idx, lessons in enumerate(layout):
            section = Section(course_id=course.id, title=f"Section {s_idx + 1}", order=s_idx)
            db.add(section)
            db.flush()
            section_ids.append(section.id)
            for l_idx, lesson_title in enumerate(lessons):
                lesson = Lesson(
                    section_id=section.id,
                    title=lesson_title,
                    youtube_video_id="dQw4w9WgXcQ",
                    order=l_idx,
                    is_preview=preview_first and s_idx == 0 and l_idx == 0,
                )
                db.add(lesson)
                db.flush()
                lesson_ids.append(lesson.id)
        db.commit()
        course.section_ids = section_ids
        course.lesson_ids = lesson_ids
        return course
    return _make


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 4, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


def make_token(sub, role="student", email=None, minutes=60):
    payload = {"sub": sub, "role": role,
               "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes)}
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth_headers():
    def _headers(sub="user-1", role="student", email="student@example.com"):
        return {"Authorization": f"Bearer {make_token(sub, role=role, email=email)}"}
    return _headers


@pytest.fixture
def client(db):
    """TestClient bound to the per-test session"""
    from fastapi.testclient import TestClient
    from learning_service.infrastructure.db import get_db
    from learning_service.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    if get_db in app.dependency_overrides:
        del app.dependency_overrides[get_db]
