"""Domain-level errors.

Services raise these; course_access.api.errors maps each one to an HTTP
status in a single place.  A duplicate grant is not an error: it is the
``already_granted`` variant of GrantResult.
"""

from __future__ import annotations

from uuid import UUID


class CourseNotFoundError(Exception):
    """The referenced course does not exist."""

    def __init__(self, course_id: UUID) -> None:
        super().__init__(f"course {course_id} not found")
        self.course_id = course_id


class LessonNotFoundError(Exception):
    """The lesson does not exist, or does not belong to the requested course."""

    def __init__(self, lesson_id: UUID, course_id: UUID | None = None) -> None:
        where = f" in course {course_id}" if course_id is not None else ""
        super().__init__(f"lesson {lesson_id} not found{where}")
        self.lesson_id = lesson_id
        self.course_id = course_id


class EntitlementRequiredError(Exception):
    """The caller holds no entitlement for the course."""

    def __init__(self, user_id: str, course_id: UUID) -> None:
        super().__init__(f"user {user_id} has no entitlement for course {course_id}")
        self.user_id = user_id
        self.course_id = course_id


class StoreUnavailableError(Exception):
    """The durable store failed for a reason other than a uniqueness conflict.

    The only retryable failure class: webhook deliveries that hit it are
    left unacknowledged so the provider redelivers.
    """


class InvalidWebhookError(Exception):
    """The webhook payload could not be verified (bad or missing signature)."""


class WebhookNotConfiguredError(Exception):
    """No webhook signing secret is configured."""


class InvalidCheckoutError(Exception):
    """The course cannot be sold through checkout (e.g. non-positive price)."""


class CheckoutUnavailableError(Exception):
    """The payment provider refused or failed to create a checkout session."""
