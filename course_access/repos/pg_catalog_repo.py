"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from course_access.db.store_errors import store_errors
from course_access.db.tables import CourseRow, LessonRow
from course_access.models.course import Course, Lesson


class PgCatalogRepo:
    """Satisfies the CatalogRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def get_course(self, course_id: UUID) -> Course | None:
        async with store_errors(), self._sessions() as session:
            row = await session.get(CourseRow, course_id)
            return _row_to_course(row) if row is not None else None

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        async with store_errors(), self._sessions() as session:
            row = await session.get(LessonRow, lesson_id)
            return _row_to_lesson(row) if row is not None else None

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.course_id == course_id)
            .order_by(LessonRow.order)
        )
        async with store_errors(), self._sessions() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_lesson(r) for r in rows]

    async def count_lessons(self, course_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(LessonRow)
            .where(LessonRow.course_id == course_id)
        )
        async with store_errors(), self._sessions() as session:
            return (await session.execute(stmt)).scalar_one()

    async def next_lesson(self, lesson: Lesson) -> Lesson | None:
        stmt = (
            select(LessonRow)
            .where(
                LessonRow.course_id == lesson.course_id,
                LessonRow.order > lesson.order,
            )
            .order_by(LessonRow.order)
            .limit(1)
        )
        async with store_errors(), self._sessions() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _row_to_lesson(row) if row is not None else None

    async def add_course(self, course: Course) -> None:
        async with store_errors(), self._sessions.begin() as session:
            session.add(
                CourseRow(
                    id=course.id,
                    title=course.title,
                    description=course.description,
                    price=course.price,
                    instructor_name=course.instructor_name,
                    image_url=course.image_url,
                )
            )

    async def add_lesson(self, lesson: Lesson) -> None:
        async with store_errors(), self._sessions.begin() as session:
            session.add(
                LessonRow(
                    id=lesson.id,
                    course_id=lesson.course_id,
                    title=lesson.title,
                    order=lesson.order,
                    video_url=lesson.video_url,
                    content=lesson.content,
                )
            )


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        description=row.description or "",
        price=row.price,
        instructor_name=row.instructor_name,
        image_url=row.image_url,
    )


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        order=row.order,
        video_url=row.video_url,
        content=row.content,
    )
