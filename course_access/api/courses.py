"""Course detail and entitlement lookup.

Course metadata is public: anonymous callers see every lesson as locked.
Owners see lessons unlocked with their own completion flags.
"""

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
    optional_user,
    require_user,
)
from course_access.core.errors import CourseNotFoundError
from course_access.models.principal import Principal
from course_access.services.access_gate import AccessGate
from course_access.services.progress_tracker import ProgressTracker

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class LessonSummaryOut(BaseModel):
    id: UUID
    title: str
    order: int
    is_locked: bool
    is_completed: bool = False


class CourseDetailOut(BaseModel):
    id: UUID
    title: str
    description: str
    price: float
    instructor_name: str | None
    image_url: str | None
    has_purchased: bool
    lesson_count: int
    lessons: list[LessonSummaryOut]


class EntitlementStatusOut(BaseModel):
    has_purchased: bool
    purchased_at: datetime.datetime | None = None


@router.get("/{course_id}", response_model=CourseDetailOut)
async def get_course(
    course_id: UUID,
    store: StoreDep,
    gate: Annotated[AccessGate, Depends(get_access_gate)],
    tracker: Annotated[ProgressTracker, Depends(get_progress_tracker)],
    principal: Annotated[Principal | None, Depends(optional_user)],
) -> CourseDetailOut:
    course = await store.catalog.get_course(course_id)
    if course is None:
        raise CourseNotFoundError(course_id)

    lessons = await store.catalog.list_lessons(course_id)
    has_purchased = principal is not None and await gate.can_access_course_content(
        principal.user_id, course_id
    )

    completed: set[UUID] = set()
    if has_purchased and principal is not None and lessons:
        progress = await tracker.lesson_progress_map(
            principal.user_id, [lesson.id for lesson in lessons]
        )
        completed = {lid for lid, p in progress.items() if p.completed}

    return CourseDetailOut(
        id=course.id,
        title=course.title,
        description=course.description,
        price=float(course.price),
        instructor_name=course.instructor_name,
        image_url=course.image_url,
        has_purchased=has_purchased,
        lesson_count=len(lessons),
        lessons=[
            LessonSummaryOut(
                id=lesson.id,
                title=lesson.title,
                order=lesson.order,
                is_locked=not has_purchased,
                is_completed=lesson.id in completed,
            )
            for lesson in lessons
        ],
    )


@router.get("/{course_id}/entitlement", response_model=EntitlementStatusOut)
async def get_entitlement(
    course_id: UUID,
    store: StoreDep,
    principal: Annotated[Principal, Depends(require_user)],
) -> EntitlementStatusOut:
    if await store.catalog.get_course(course_id) is None:
        raise CourseNotFoundError(course_id)

    ent = await store.entitlements.get(principal.user_id, course_id)
    return EntitlementStatusOut(
        has_purchased=ent is not None,
        purchased_at=ent.created_at if ent is not None else None,
    )
