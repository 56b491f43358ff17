"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from course_access.db.store_errors import store_errors
from course_access.db.tables import LessonProgressRow, LessonRow
from course_access.models.progress import LessonProgress


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def upsert(self, progress: LessonProgress) -> LessonProgress:
        stmt = insert(LessonProgressRow).values(
            user_id=progress.user_id,
            lesson_id=progress.lesson_id,
            completed=progress.completed,
            completed_at=progress.completed_at,
        )
        # Last write wins, including completed_at on repeated completions.
        stmt = stmt.on_conflict_do_update(
            index_elements=[LessonProgressRow.user_id, LessonProgressRow.lesson_id],
            set_={
                "completed": stmt.excluded.completed,
                "completed_at": stmt.excluded.completed_at,
            },
        ).returning(LessonProgressRow)
        async with store_errors(), self._sessions.begin() as session:
            row = (await session.execute(stmt)).scalar_one()
            return _row_to_progress(row)

    async def get(self, user_id: str, lesson_id: UUID) -> LessonProgress | None:
        async with store_errors(), self._sessions() as session:
            row = await session.get(LessonProgressRow, (user_id, lesson_id))
            return _row_to_progress(row) if row is not None else None

    async def list_for_lessons(
        self, user_id: str, lesson_ids: Iterable[UUID]
    ) -> dict[UUID, LessonProgress]:
        ids = list(lesson_ids)
        if not ids:
            return {}
        stmt = select(LessonProgressRow).where(
            LessonProgressRow.user_id == user_id,
            LessonProgressRow.lesson_id.in_(ids),
        )
        async with store_errors(), self._sessions() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return {r.lesson_id: _row_to_progress(r) for r in rows}

    async def count_completed_in_course(self, user_id: str, course_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(LessonProgressRow)
            .join(LessonRow, LessonRow.id == LessonProgressRow.lesson_id)
            .where(
                LessonProgressRow.user_id == user_id,
                LessonProgressRow.completed.is_(True),
                LessonRow.course_id == course_id,
            )
        )
        async with store_errors(), self._sessions() as session:
            return (await session.execute(stmt)).scalar_one()


def _row_to_progress(row: LessonProgressRow) -> LessonProgress:
    return LessonProgress(
        user_id=row.user_id,
        lesson_id=row.lesson_id,
        completed=row.completed,
        completed_at=row.completed_at,
    )
