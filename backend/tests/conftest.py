import sys
import time
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db import session as session_module
from app.main import create_app

# Import models so that they are registered in Base.metadata before create_all.
from app.models.quiz import Quiz, Question  # noqa: F401
from app.models.submission import QuizSubmission, SubmissionAnswer  # noqa: F401
from app.models.notification import QuizNotification  # noqa: F401


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def incr(self, key: str):
        cur = self.get(key)
        n = int(cur or 0) + 1
        _, exp = self._data.get(key, ("", None))
        self._data[key] = (str(n), exp)
        return n

    def expire(self, key: str, seconds: int):
        entry = self._get_entry(key)
        if not entry:
            return False
        value, _ = entry
        self._data[key] = (value, self._now() + int(seconds))
        return True

    def ttl(self, key: str):
        entry = self._get_entry(key)
        if not entry:
            return -2
        _, exp = entry
        if exp is None:
            return -1
        return max(0, int(exp - self._now()))

    def flushall(self):
        self._data.clear()


class _RecordingQueue:
    def __init__(self):
        self.jobs: list[tuple[object, dict]] = []

    def enqueue(self, func, *args, **kwargs):
        self.jobs.append((func, kwargs))
        return None


# Configure test DB (SQLite in-memory) at import time so all tests importing
# app.db.session.SessionLocal will get the patched version.
_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
Base.metadata.create_all(bind=_engine)
session_module.engine = _engine
session_module.SessionLocal = session_module.sessionmaker(autocommit=False, autoflush=False, bind=_engine)


# Stub Redis at import time (rate limiting + readiness).
_mem_redis = _MemoryRedis()
import app.core.redis_client as redis_client_module

redis_client_module.get_redis = lambda: _mem_redis

import app.core.rate_limit as rate_limit_module
rate_limit_module.get_redis = lambda: _mem_redis

import app.routers.health as health_router_module
health_router_module.get_redis = lambda: _mem_redis

# Stub the RQ queue so notifications are recorded instead of enqueued.
_queue = _RecordingQueue()
import app.services.notifications as notifications_module

notifications_module.get_queue = lambda name=None: _queue


@pytest.fixture(scope="session")
def client():
    app = create_app()

    # Ensure app dependencies use our session factory.
    def _get_db_override():
        db = session_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[session_module.get_db] = _get_db_override
    return TestClient(app)


@pytest.fixture()
def db():
    with session_module.SessionLocal() as session:
        yield session


@pytest.fixture()
def mem_redis():
    return _mem_redis


@pytest.fixture()
def recorded_jobs():
    _queue.jobs.clear()
    return _queue.jobs


def _token(role: str, name: str) -> tuple[str, str]:
    from app.core.security import create_access_token

    user_id = f"{role}_{uuid.uuid4().hex[:8]}"
    return user_id, create_access_token(user_id=user_id, role=role, name=name)


@pytest.fixture()
def faculty():
    user_id, token = _token("faculty", "Dr. Reyes")
    return {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture()
def other_faculty():
    user_id, token = _token("faculty", "Dr. Okafor")
    return {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture()
def admin():
    user_id, token = _token("admin", "Registrar")
    return {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture()
def student():
    user_id, token = _token("student", "Ada Lovelace")
    return {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture()
def other_student():
    user_id, token = _token("student", "Alan Turing")
    return {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}


def quiz_body(**overrides) -> dict:
    body = {
        "name": "Intro to Algorithms",
        "description": "Week 3 check-in",
        "category": "cs",
        "difficulty": "medium",
        "time_limit_minutes": 20,
        "is_public": True,
        "allow_retakes": False,
        "show_results": True,
        "questions": [
            {
                "question": "Which sort is stable?",
                "type": "multiple-choice",
                "options": ["A", "B", "C"],
                "correct_answer": "B",
                "points": 2,
                "explanation": "Merge sort keeps equal keys in order.",
            },
            {
                "question": "Binary search needs sorted input.",
                "type": "true-false",
                "correct_answer": "True",
                "points": 3,
            },
        ],
    }
    body.update(overrides)
    return body


@pytest.fixture()
def make_quiz_body():
    return quiz_body
