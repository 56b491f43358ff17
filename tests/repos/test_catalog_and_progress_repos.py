from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from course_access.models.course import Course, Lesson
from course_access.models.progress import LessonProgress
from course_access.repos.catalog_repo import InMemoryCatalogRepo
from course_access.repos.progress_repo import InMemoryProgressRepo


@pytest.fixture
def catalog() -> InMemoryCatalogRepo:
    return InMemoryCatalogRepo()


def _course_with(catalog: InMemoryCatalogRepo, orders: list[int]):
    course = Course.new(title="C", price="1")
    lessons = [Lesson.new(course_id=course.id, title=f"L{o}", order=o) for o in orders]

    async def _add():
        await catalog.add_course(course)
        for lesson in lessons:
            await catalog.add_lesson(lesson)

    asyncio.run(_add())
    return course, lessons


# ---- catalog ----


def test_lessons_listed_by_order(catalog) -> None:
    course, _ = _course_with(catalog, [3, 1, 2])
    listed = asyncio.run(catalog.list_lessons(course.id))
    assert [x.order for x in listed] == [1, 2, 3]
    assert asyncio.run(catalog.count_lessons(course.id)) == 3


def test_next_lesson_skips_gaps(catalog) -> None:
    course, lessons = _course_with(catalog, [1, 5, 9])
    by_order = {x.order: x for x in lessons}
    assert asyncio.run(catalog.next_lesson(by_order[1])) == by_order[5]
    assert asyncio.run(catalog.next_lesson(by_order[5])) == by_order[9]
    assert asyncio.run(catalog.next_lesson(by_order[9])) is None


def test_duplicate_order_rejected(catalog) -> None:
    course, _ = _course_with(catalog, [1])
    with pytest.raises(ValueError):
        asyncio.run(catalog.add_lesson(Lesson.new(course_id=course.id, title="x", order=1)))


def test_lesson_for_unknown_course_rejected(catalog) -> None:
    with pytest.raises(KeyError):
        asyncio.run(catalog.add_lesson(Lesson.new(course_id=uuid4(), title="x", order=1)))


def test_negative_price_rejected() -> None:
    with pytest.raises(ValueError):
        Course.new(title="C", price="-1")


# ---- progress ----


def test_upsert_replaces_record(catalog) -> None:
    course, lessons = _course_with(catalog, [1, 2])
    repo = InMemoryProgressRepo(catalog)
    lid = lessons[0].id

    asyncio.run(repo.upsert(LessonProgress.record(user_id="u", lesson_id=lid, completed=True)))
    asyncio.run(repo.upsert(LessonProgress.record(user_id="u", lesson_id=lid, completed=False)))

    stored = asyncio.run(repo.get("u", lid))
    assert stored is not None
    assert stored.completed is False
    assert stored.completed_at is None
    assert asyncio.run(repo.count_completed_in_course("u", course.id)) == 0


def test_count_is_scoped_to_course_and_user(catalog) -> None:
    course_a, lessons_a = _course_with(catalog, [1, 2])
    course_b, lessons_b = _course_with(catalog, [1])
    repo = InMemoryProgressRepo(catalog)

    async def _write():
        for lesson in (*lessons_a, *lessons_b):
            await repo.upsert(
                LessonProgress.record(user_id="u", lesson_id=lesson.id, completed=True)
            )
        await repo.upsert(
            LessonProgress.record(user_id="other", lesson_id=lessons_a[0].id, completed=True)
        )

    asyncio.run(_write())
    assert asyncio.run(repo.count_completed_in_course("u", course_a.id)) == 2
    assert asyncio.run(repo.count_completed_in_course("u", course_b.id)) == 1
    assert asyncio.run(repo.count_completed_in_course("other", course_a.id)) == 1
