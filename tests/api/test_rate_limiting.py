"""Rate limiting tests.

Verifies the token bucket limits on the write routes:
1. Requests within the bucket capacity pass the limiter
2. Requests exceeding capacity get 429 Too Many Requests
3. The 429 response includes a Retry-After header
4. Rate limit headers are present on limited routes only
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, grant


@pytest.fixture
def owned_lesson(store, course_with_lessons):
    course, lessons = course_with_lessons
    grant(store, "rate-limit-user", course)
    return course, lessons[0]


def _put_progress(client: TestClient, course, lesson, user: str = "rate-limit-user"):
    return client.put(
        f"/v1/courses/{course.id}/lessons/{lesson.id}/progress",
        json={"completed": True},
        headers=auth(user),
    )


def test_requests_within_limit_succeed(client: TestClient, owned_lesson) -> None:
    """A handful of writes should all succeed, well within bucket capacity."""
    course, lesson = owned_lesson
    for _ in range(5):
        assert _put_progress(client, course, lesson).status_code == 200


def test_progress_writes_over_limit_get_429(client: TestClient, owned_lesson) -> None:
    course, lesson = owned_lesson
    # Capacity is 60; 80 requests outpace the 1/s refill.
    statuses = [_put_progress(client, course, lesson).status_code for _ in range(80)]

    assert 200 in statuses, "Some requests should succeed"
    assert 429 in statuses, "Some requests should be rate limited"


def test_429_includes_retry_after_header(client: TestClient, owned_lesson) -> None:
    """When rate limited, the response MUST include Retry-After."""
    course, lesson = owned_lesson
    last_resp = None
    for _ in range(80):
        last_resp = _put_progress(client, course, lesson)
    assert last_resp is not None
    assert last_resp.status_code == 429
    assert "retry-after" in last_resp.headers
    assert int(last_resp.headers["retry-after"]) > 0
    assert last_resp.headers["x-ratelimit-remaining"] == "0"


def test_limited_route_reports_rate_limit_headers(
    client: TestClient, owned_lesson
) -> None:
    course, lesson = owned_lesson
    resp = _put_progress(client, course, lesson)
    assert resp.headers["x-ratelimit-limit"] == "60"
    assert int(resp.headers["x-ratelimit-remaining"]) == 59


def test_read_routes_are_not_limited(client: TestClient, course_with_lessons) -> None:
    course, _ = course_with_lessons
    resp = client.get(f"/v1/courses/{course.id}")
    assert "x-ratelimit-limit" not in resp.headers


def test_purchase_has_strict_rate_limit(client: TestClient, course_with_lessons) -> None:
    """Purchases have a small bucket (capacity=10)."""
    course, _ = course_with_lessons
    statuses = [
        client.post(f"/v1/courses/{course.id}/purchase", headers=auth()).status_code
        for _ in range(15)
    ]
    assert 429 in statuses, "Purchases should hit the limit before 15 attempts"


def test_checkout_and_purchase_use_separate_buckets(
    client: TestClient, course_with_lessons
) -> None:
    course, _ = course_with_lessons
    for _ in range(12):
        client.post(f"/v1/courses/{course.id}/purchase", headers=auth())

    resp = client.post(
        "/v1/checkout/sessions", json={"course_id": str(course.id)}, headers=auth()
    )
    assert resp.status_code == 201


def test_different_users_have_separate_buckets(
    client: TestClient, store, owned_lesson
) -> None:
    """Each user gets their own token bucket; user A's usage doesn't
    affect user B."""
    course, lesson = owned_lesson
    grant(store, "user-b", course)

    for _ in range(80):
        _put_progress(client, course, lesson)

    assert _put_progress(client, course, lesson, user="user-b").status_code == 200
