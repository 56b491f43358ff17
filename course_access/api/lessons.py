from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from course_access.api.dependencies import (
    StoreDep,
    get_access_gate,
    get_progress_tracker,
    require_user,
)
from course_access.core.errors import LessonNotFoundError
from course_access.models.principal import Principal
from course_access.services.access_gate import AccessGate
from course_access.services.progress_tracker import ProgressTracker

router = APIRouter(prefix="/v1/lessons", tags=["lessons"])


class LessonProgressOut(BaseModel):
    is_completed: bool
    completed_at: datetime.datetime | None = None


class LessonOut(BaseModel):
    id: UUID
    course_id: UUID
    title: str
    order: int
    video_url: str | None
    content: str | None
    next_lesson_id: UUID | None
    progress: LessonProgressOut


@router.get("/{lesson_id}", response_model=LessonOut)
async def get_lesson(
    lesson_id: UUID,
    store: StoreDep,
    principal: Annotated[Principal, Depends(require_user)],
    gate: Annotated[AccessGate, Depends(get_access_gate)],
    tracker: Annotated[ProgressTracker, Depends(get_progress_tracker)],
) -> LessonOut:
    """Gated lesson content with navigation and the caller's own progress."""
    lesson = await store.catalog.get_lesson(lesson_id)
    if lesson is None:
        raise LessonNotFoundError(lesson_id)
    await gate.require_course_access(principal.user_id, lesson.course_id)

    nxt = await store.catalog.next_lesson(lesson)
    progress = await tracker.get_lesson_progress(principal.user_id, lesson_id)

    return LessonOut(
        id=lesson.id,
        course_id=lesson.course_id,
        title=lesson.title,
        order=lesson.order,
        video_url=lesson.video_url,
        content=lesson.content,
        next_lesson_id=nxt.id if nxt is not None else None,
        progress=LessonProgressOut(
            is_completed=progress.completed if progress is not None else False,
            completed_at=progress.completed_at if progress is not None else None,
        ),
    )
