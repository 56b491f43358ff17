from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    """Catalog entry. Read-only from this service's point of view."""

    id: UUID
    title: str
    description: str = ""
    price: Decimal = Decimal("0")
    instructor_name: str | None = None
    image_url: str | None = None

    @staticmethod
    def new(
        *,
        title: str,
        description: str = "",
        price: Decimal | int | str = 0,
        instructor_name: str | None = None,
        image_url: str | None = None,
    ) -> Course:
        amount = Decimal(price)
        if amount < 0:
            raise ValueError("price must be non-negative")
        return Course(
            id=uuid4(),
            title=title,
            description=description,
            price=amount,
            instructor_name=instructor_name,
            image_url=image_url,
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    course_id: UUID
    title: str
    order: int  # unique within a course; drives "next lesson" navigation
    video_url: str | None = None
    content: str | None = None

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        order: int,
        video_url: str | None = None,
        content: str | None = None,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            course_id=course_id,
            title=title,
            order=order,
            video_url=video_url,
            content=content,
        )
