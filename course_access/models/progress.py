from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class LessonProgress:
    """Per-(user, lesson) completion record, upserted in place.

    ``completed_at`` is set iff ``completed`` is true and always reflects the
    most recent completion write.
    """

    user_id: str
    lesson_id: UUID
    completed: bool
    completed_at: datetime.datetime | None = None

    @staticmethod
    def record(*, user_id: str, lesson_id: UUID, completed: bool) -> LessonProgress:
        return LessonProgress(
            user_id=user_id,
            lesson_id=lesson_id,
            completed=completed,
            completed_at=datetime.datetime.now(datetime.UTC) if completed else None,
        )


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """Read model computed from LessonProgress rows and the lesson count.

    Never persisted, so it cannot drift from its source rows.
    """

    user_id: str
    course_id: UUID
    completed_count: int
    total_count: int

    @property
    def percentage(self) -> int:
        if self.total_count == 0:
            return 0
        # Round half up: 1/8 -> 13, not banker's 12.
        return (200 * self.completed_count + self.total_count) // (
            2 * self.total_count
        )
