from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import os
import time
from collections.abc import Iterator
from decimal import Decimal

# Settings are read at import time: pin a hermetic test environment
# (in-memory store and rate limiter, dev checkout, ephemeral JWT key)
# before anything from course_access is imported.
WEBHOOK_SECRET = "whsec_test_secret"

os.environ["APP_ENV"] = "test"
for _name in (
    "DATABASE_URL",
    "REDIS_URL",
    "STRIPE_SECRET_KEY",
    "AUTH_PUBLIC_KEY",
    "SEED_CATALOG",
    "FRONTEND_URL",
):
    os.environ.pop(_name, None)
os.environ["STRIPE_WEBHOOK_SECRET"] = WEBHOOK_SECRET

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from course_access.db.store import InMemoryStore  # noqa: E402
from course_access.main import app  # noqa: E402
from course_access.models.course import Course, Lesson  # noqa: E402
from course_access.models.entitlement import Entitlement  # noqa: E402
from course_access.services import token_service  # noqa: E402


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Runs the lifespan, so every test starts from a fresh in-memory store."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def store(client: TestClient) -> InMemoryStore:
    return app.state.store


def mint_token(username: str = "test-user") -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username)


def auth(username: str = "test-user") -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(username)}"}


@pytest.fixture
def token() -> str:
    return mint_token()


# ---------------------------------------------------------------------------
# Catalog and entitlement helpers
# ---------------------------------------------------------------------------


def seed_course(
    store: InMemoryStore,
    *,
    lesson_count: int = 4,
    price: str = "49.99",
    title: str = "Test Course",
) -> tuple[Course, list[Lesson]]:
    course = Course.new(title=title, price=Decimal(price), instructor_name="Ada")
    lessons = [
        Lesson.new(course_id=course.id, title=f"Lesson {i}", order=i, content=f"body {i}")
        for i in range(1, lesson_count + 1)
    ]

    async def _add() -> None:
        await store.catalog.add_course(course)
        for lesson in lessons:
            await store.catalog.add_lesson(lesson)

    asyncio.run(_add())
    return course, lessons


def grant(store: InMemoryStore, user_id: str, course: Course) -> Entitlement:
    result = asyncio.run(store.entitlements.grant(user_id, course.id))
    assert result.entitlement is not None
    return result.entitlement


@pytest.fixture
def course_with_lessons(store: InMemoryStore) -> tuple[Course, list[Lesson]]:
    """Course C1 with lessons L1..L4."""
    return seed_course(store)


# ---------------------------------------------------------------------------
# Signed webhook helpers
# ---------------------------------------------------------------------------


def completed_event(
    user_id: str | None,
    course_id: str | None,
    *,
    session_id: str = "cs_test_123",
    event_id: str = "evt_123",
    event_type: str = "checkout.session.completed",
) -> dict:
    metadata = {}
    if user_id is not None:
        metadata["userId"] = user_id
    if course_id is not None:
        metadata["courseId"] = course_id
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_status": "paid",
                "metadata": metadata,
            }
        },
    }


def sign_payload(
    payload: bytes,
    *,
    secret: str = WEBHOOK_SECRET,
    timestamp: int | None = None,
) -> str:
    """Build a Stripe-Signature header value the way Stripe does."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode() + payload
    sig = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def post_webhook(client: TestClient, event: dict, **sign_kwargs):
    body = json.dumps(event).encode()
    return client.post(
        "/v1/webhooks/payments",
        content=body,
        headers={
            "Stripe-Signature": sign_payload(body, **sign_kwargs),
            "Content-Type": "application/json",
        },
    )
