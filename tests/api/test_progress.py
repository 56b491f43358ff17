"""Lesson progress writes and the course progress aggregate."""

from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, grant, seed_course


def _put(client: TestClient, course_id, lesson_id, body, user: str = "test-user"):
    return client.put(
        f"/v1/courses/{course_id}/lessons/{lesson_id}/progress",
        json=body,
        headers=auth(user),
    )


# ---- 401: unauthenticated ----


def test_progress_write_rejects_missing_token(
    client: TestClient, course_with_lessons
) -> None:
    course, lessons = course_with_lessons
    resp = client.put(
        f"/v1/courses/{course.id}/lessons/{lessons[0].id}/progress",
        json={"completed": True},
    )
    assert resp.status_code == 401


def test_progress_read_rejects_missing_token(
    client: TestClient, course_with_lessons
) -> None:
    course, _ = course_with_lessons
    assert client.get(f"/v1/courses/{course.id}/progress").status_code == 401


# ---- 403: not purchased ----


def test_non_owner_cannot_read_or_write_progress(
    client: TestClient, store, course_with_lessons
) -> None:
    course, lessons = course_with_lessons

    resp = client.get(f"/v1/courses/{course.id}/progress", headers=auth())
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Course not purchased"

    resp = _put(client, course.id, lessons[0].id, {"completed": True})
    assert resp.status_code == 403

    # Nothing was written.
    stored = asyncio.run(store.progress.get("test-user", lessons[0].id))
    assert stored is None


# ---- 404 before 403 ----


def test_unknown_course_is_404_not_403(client: TestClient) -> None:
    resp = client.get(f"/v1/courses/{uuid4()}/progress", headers=auth())
    assert resp.status_code == 404

    resp = _put(client, uuid4(), uuid4(), {"completed": True})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Course not found"


def test_lesson_from_another_course_is_404(
    client: TestClient, store, course_with_lessons
) -> None:
    course, _ = course_with_lessons
    _, other_lessons = seed_course(store, title="Other")
    grant(store, "test-user", course)

    resp = _put(client, course.id, other_lessons[0].id, {"completed": True})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Lesson not found"


def test_unknown_lesson_is_404_even_without_entitlement(
    client: TestClient, course_with_lessons
) -> None:
    course, _ = course_with_lessons
    resp = _put(client, course.id, uuid4(), {"completed": True})
    assert resp.status_code == 404


# ---- 400: strict boolean ----


@pytest.mark.parametrize("body", [{"completed": "yes"}, {"completed": 1}, {}])
def test_non_boolean_completed_is_400(
    client: TestClient, store, course_with_lessons, body
) -> None:
    course, lessons = course_with_lessons
    grant(store, "test-user", course)

    resp = _put(client, course.id, lessons[0].id, body)
    assert resp.status_code == 400
    assert resp.json()["detail"][0]["loc"] == ["body", "completed"]
    assert asyncio.run(store.progress.get("test-user", lessons[0].id)) is None


# ---- writes ----


def test_complete_lesson_sets_timestamp(
    client: TestClient, store, course_with_lessons
) -> None:
    course, lessons = course_with_lessons
    grant(store, "test-user", course)

    resp = _put(client, course.id, lessons[0].id, {"completed": True})
    assert resp.status_code == 200
    body = resp.json()
    assert body["lesson_id"] == str(lessons[0].id)
    assert body["completed"] is True
    assert body["completed_at"] is not None


def test_completing_twice_keeps_one_record_with_latest_timestamp(
    client: TestClient, store, course_with_lessons
) -> None:
    course, lessons = course_with_lessons
    grant(store, "test-user", course)

    first = _put(client, course.id, lessons[0].id, {"completed": True}).json()
    second = _put(client, course.id, lessons[0].id, {"completed": True}).json()
    assert second["completed"] is True
    assert second["completed_at"] >= first["completed_at"]

    progress = client.get(f"/v1/courses/{course.id}/progress", headers=auth()).json()
    assert progress["completed_count"] == 1


def test_uncomplete_clears_timestamp(
    client: TestClient, store, course_with_lessons
) -> None:
    course, lessons = course_with_lessons
    grant(store, "test-user", course)

    _put(client, course.id, lessons[0].id, {"completed": True})
    resp = _put(client, course.id, lessons[0].id, {"completed": False})
    assert resp.status_code == 200
    assert resp.json() == {
        "lesson_id": str(lessons[0].id),
        "completed": False,
        "completed_at": None,
    }

    stored = asyncio.run(store.progress.get("test-user", lessons[0].id))
    assert stored is not None
    assert stored.completed is False
    assert stored.completed_at is None


# ---- aggregate ----


def test_course_progress_counts_completed_lessons(
    client: TestClient, store, course_with_lessons
) -> None:
    course, lessons = course_with_lessons
    grant(store, "test-user", course)

    _put(client, course.id, lessons[0].id, {"completed": True})
    _put(client, course.id, lessons[1].id, {"completed": True})

    resp = client.get(f"/v1/courses/{course.id}/progress", headers=auth())
    assert resp.status_code == 200
    assert resp.json() == {
        "course_id": str(course.id),
        "completed_count": 2,
        "total_count": 4,
        "percentage": 50,
    }


def test_course_progress_is_per_user(
    client: TestClient, store, course_with_lessons
) -> None:
    course, lessons = course_with_lessons
    grant(store, "alice", course)
    grant(store, "bob", course)

    _put(client, course.id, lessons[0].id, {"completed": True}, user="alice")

    bob = client.get(f"/v1/courses/{course.id}/progress", headers=auth("bob")).json()
    assert bob["completed_count"] == 0
    assert bob["percentage"] == 0


def test_course_without_lessons_reports_zero_percent(
    client: TestClient, store
) -> None:
    course, _ = seed_course(store, lesson_count=0)
    grant(store, "test-user", course)

    body = client.get(f"/v1/courses/{course.id}/progress", headers=auth()).json()
    assert body == {
        "course_id": str(course.id),
        "completed_count": 0,
        "total_count": 0,
        "percentage": 0,
    }


def test_all_lessons_complete_is_100_percent(
    client: TestClient, store, course_with_lessons
) -> None:
    course, lessons = course_with_lessons
    grant(store, "test-user", course)
    for lesson in lessons:
        _put(client, course.id, lesson.id, {"completed": True})

    body = client.get(f"/v1/courses/{course.id}/progress", headers=auth()).json()
    assert body["percentage"] == 100
