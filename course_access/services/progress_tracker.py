"""Per-lesson completion state and the derived course aggregate.

Every operation resolves existence first (404) and the entitlement gate
second (403), so a request for a missing course never reveals whether the
caller owns anything.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from course_access.core.errors import CourseNotFoundError, LessonNotFoundError
from course_access.models.course import Lesson
from course_access.models.progress import CourseProgress, LessonProgress
from course_access.repos.catalog_repo import CatalogRepo
from course_access.repos.progress_repo import ProgressRepo
from course_access.services.access_gate import AccessGate

logger = logging.getLogger(__name__)


class ProgressTracker:
    def __init__(
        self,
        catalog: CatalogRepo,
        progress: ProgressRepo,
        gate: AccessGate,
    ) -> None:
        self._catalog = catalog
        self._progress = progress
        self._gate = gate

    async def _lesson_in_course(self, course_id: UUID, lesson_id: UUID) -> Lesson:
        if await self._catalog.get_course(course_id) is None:
            raise CourseNotFoundError(course_id)
        lesson = await self._catalog.get_lesson(lesson_id)
        if lesson is None or lesson.course_id != course_id:
            raise LessonNotFoundError(lesson_id, course_id)
        return lesson

    async def set_lesson_progress(
        self,
        user_id: str,
        course_id: UUID,
        lesson_id: UUID,
        completed: bool,
    ) -> LessonProgress:
        """Upsert completion for one lesson.

        ``completed_at`` is stamped with the current time on every true write
        and cleared on a false write.
        """
        await self._lesson_in_course(course_id, lesson_id)
        await self._gate.require_course_access(user_id, course_id)

        saved = await self._progress.upsert(
            LessonProgress.record(
                user_id=user_id, lesson_id=lesson_id, completed=completed
            )
        )
        logger.info(
            "Lesson progress saved user=%s lesson=%s completed=%s",
            user_id,
            lesson_id,
            completed,
        )
        return saved

    async def get_course_progress(self, user_id: str, course_id: UUID) -> CourseProgress:
        if await self._catalog.get_course(course_id) is None:
            raise CourseNotFoundError(course_id)
        await self._gate.require_course_access(user_id, course_id)

        total = await self._catalog.count_lessons(course_id)
        completed = await self._progress.count_completed_in_course(user_id, course_id)
        return CourseProgress(
            user_id=user_id,
            course_id=course_id,
            completed_count=completed,
            total_count=total,
        )

    async def get_lesson_progress(
        self, user_id: str, lesson_id: UUID
    ) -> LessonProgress | None:
        """Raw read; the caller has already gated the lesson's course."""
        return await self._progress.get(user_id, lesson_id)

    async def lesson_progress_map(
        self, user_id: str, lesson_ids: Iterable[UUID]
    ) -> dict[UUID, LessonProgress]:
        return await self._progress.list_for_lessons(user_id, lesson_ids)
