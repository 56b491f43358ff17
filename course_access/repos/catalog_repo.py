from __future__ import annotations

from typing import Protocol
from uuid import UUID

from course_access.models.course import Course, Lesson


class CatalogRepo(Protocol):
    """Read access to courses and lessons.

    The catalog is owned by content management; this service only reads it.
    ``add_course``/``add_lesson`` exist for seeding and tests.
    """

    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    async def list_lessons(self, course_id: UUID) -> list[Lesson]: ...
    async def count_lessons(self, course_id: UUID) -> int: ...
    async def next_lesson(self, lesson: Lesson) -> Lesson | None: ...
    async def add_course(self, course: Course) -> None: ...
    async def add_lesson(self, lesson: Lesson) -> None: ...


class InMemoryCatalogRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._lessons: dict[UUID, Lesson] = {}

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        return sorted(
            (x for x in self._lessons.values() if x.course_id == course_id),
            key=lambda x: x.order,
        )

    async def count_lessons(self, course_id: UUID) -> int:
        return sum(1 for x in self._lessons.values() if x.course_id == course_id)

    async def next_lesson(self, lesson: Lesson) -> Lesson | None:
        later = [
            x
            for x in self._lessons.values()
            if x.course_id == lesson.course_id and x.order > lesson.order
        ]
        return min(later, key=lambda x: x.order, default=None)

    def has_course(self, course_id: UUID) -> bool:
        return course_id in self._courses

    async def add_course(self, course: Course) -> None:
        self._courses[course.id] = course

    async def add_lesson(self, lesson: Lesson) -> None:
        # Mirrors the FK and UNIQUE(course_id, "order") constraints.
        if lesson.course_id not in self._courses:
            raise KeyError("course not found")
        for existing in self._lessons.values():
            if existing.course_id == lesson.course_id and existing.order == lesson.order:
                raise ValueError("lesson order already used in course")
        self._lessons[lesson.id] = lesson
