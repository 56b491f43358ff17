"""Per-lesson completion writes and the aggregate course progress read.

Both routes resolve 404 before 403 (see ProgressTracker).  ``completed``
is a StrictBool: ``"yes"``, ``1`` or ``null`` are rejected with 400 before
the store is touched.
"""

from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, StrictBool

from course_access.api.dependencies import get_progress_tracker, require_user
from course_access.api.ratelimit import PROGRESS_WRITE_LIMIT, require_rate_limit
from course_access.models.principal import Principal
from course_access.services.progress_tracker import ProgressTracker

router = APIRouter(prefix="/v1/courses", tags=["progress"])


class LessonProgressIn(BaseModel):
    completed: StrictBool


class LessonProgressOut(BaseModel):
    lesson_id: UUID
    completed: bool
    completed_at: datetime.datetime | None


class CourseProgressOut(BaseModel):
    course_id: UUID
    completed_count: int
    total_count: int
    percentage: int


@router.put(
    "/{course_id}/lessons/{lesson_id}/progress",
    response_model=LessonProgressOut,
    dependencies=[Depends(require_rate_limit(PROGRESS_WRITE_LIMIT, scope="progress"))],
)
async def set_lesson_progress(
    course_id: UUID,
    lesson_id: UUID,
    body: LessonProgressIn,
    principal: Annotated[Principal, Depends(require_user)],
    tracker: Annotated[ProgressTracker, Depends(get_progress_tracker)],
) -> LessonProgressOut:
    saved = await tracker.set_lesson_progress(
        principal.user_id, course_id, lesson_id, body.completed
    )
    return LessonProgressOut(
        lesson_id=saved.lesson_id,
        completed=saved.completed,
        completed_at=saved.completed_at,
    )


@router.get("/{course_id}/progress", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    tracker: Annotated[ProgressTracker, Depends(get_progress_tracker)],
) -> CourseProgressOut:
    progress = await tracker.get_course_progress(principal.user_id, course_id)
    return CourseProgressOut(
        course_id=progress.course_id,
        completed_count=progress.completed_count,
        total_count=progress.total_count,
        percentage=progress.percentage,
    )
