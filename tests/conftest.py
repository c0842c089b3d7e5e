from __future__ import annotations

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import lms` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lms.main import create_app  # noqa: E402
from lms.models.actor import STUDENT, TEACHER, Actor  # noqa: E402
from lms.models.course import Course  # noqa: E402
from lms.repos.kv_repo import InMemoryKeyValueRepo  # noqa: E402
from lms.services.course_service import CourseService  # noqa: E402
from lms.services.enrollment_service import EnrollmentService  # noqa: E402
from lms.store.entity_store import EntityStore  # noqa: E402

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=UTC)

TEACHER_1 = Actor(id="t1", role=TEACHER, name="Tina Teacher", email="tina@example.com")
TEACHER_2 = Actor(id="t2", role=TEACHER, name="Theo Teacher", email="theo@example.com")
STUDENT_1 = Actor(id="s1", role=STUDENT, name="Sam Student", email="sam@example.com")
STUDENT_2 = Actor(id="s2", role=STUDENT, name="Sky Student", email="sky@example.com")


class FrozenClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def kv_repo() -> InMemoryKeyValueRepo:
    return InMemoryKeyValueRepo()


@pytest.fixture
def store(kv_repo: InMemoryKeyValueRepo) -> EntityStore:
    return EntityStore(kv_repo)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def course_service(store: EntityStore, clock: FrozenClock) -> CourseService:
    return CourseService(store, clock=clock)


@pytest.fixture
def enrollment_service(store: EntityStore, clock: FrozenClock) -> EnrollmentService:
    return EnrollmentService(store, clock=clock)


@pytest.fixture
def course(course_service: CourseService) -> Course:
    """A published 10-lesson course owned by TEACHER_1."""
    return course_service.add_course(TEACHER_1, title="Intro to Python")


@pytest.fixture
def client(store: EntityStore, clock: FrozenClock) -> TestClient:
    return TestClient(create_app(store, clock=clock))


# ---------------------------------------------------------------------------
# Identity header helpers
# ---------------------------------------------------------------------------


def headers_for(actor: Actor) -> dict[str, str]:
    """Headers the identity proxy would forward for `actor`."""
    return {
        "X-User-Id": actor.id,
        "X-User-Role": actor.role,
        "X-User-Name": actor.name,
        "X-User-Email": actor.email,
    }
