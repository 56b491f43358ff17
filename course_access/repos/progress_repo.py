from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from course_access.models.progress import LessonProgress
from course_access.repos.catalog_repo import InMemoryCatalogRepo


class ProgressRepo(Protocol):
    async def upsert(self, progress: LessonProgress) -> LessonProgress: ...
    async def get(self, user_id: str, lesson_id: UUID) -> LessonProgress | None: ...
    async def list_for_lessons(
        self, user_id: str, lesson_ids: Iterable[UUID]
    ) -> dict[UUID, LessonProgress]: ...
    async def count_completed_in_course(self, user_id: str, course_id: UUID) -> int: ...


class InMemoryProgressRepo:
    """Keyed by (user_id, lesson_id); upsert replaces the record wholesale.

    Needs the catalog to resolve which lessons belong to a course, the
    in-memory equivalent of the lessons join.
    """

    def __init__(self, catalog: InMemoryCatalogRepo) -> None:
        self._catalog = catalog
        self._rows: dict[tuple[str, UUID], LessonProgress] = {}

    async def upsert(self, progress: LessonProgress) -> LessonProgress:
        self._rows[(progress.user_id, progress.lesson_id)] = progress
        return progress

    async def get(self, user_id: str, lesson_id: UUID) -> LessonProgress | None:
        return self._rows.get((user_id, lesson_id))

    async def list_for_lessons(
        self, user_id: str, lesson_ids: Iterable[UUID]
    ) -> dict[UUID, LessonProgress]:
        found: dict[UUID, LessonProgress] = {}
        for lesson_id in lesson_ids:
            row = self._rows.get((user_id, lesson_id))
            if row is not None:
                found[lesson_id] = row
        return found

    async def count_completed_in_course(self, user_id: str, course_id: UUID) -> int:
        lessons = await self._catalog.list_lessons(course_id)
        return sum(
            1
            for lesson in lessons
            if (row := self._rows.get((user_id, lesson.id))) is not None
            and row.completed
        )
