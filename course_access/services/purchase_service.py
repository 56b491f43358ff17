from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from course_access.core.errors import CourseNotFoundError, StoreUnavailableError
from course_access.core.metrics import ENTITLEMENT_GRANTS
from course_access.models.course import Course
from course_access.models.entitlement import Entitlement
from course_access.repos.catalog_repo import CatalogRepo
from course_access.repos.entitlement_repo import EntitlementStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PurchaseResult:
    """granted is False when the user already owned the course; entitlement
    is then the existing one."""

    granted: bool
    entitlement: Entitlement
    course: Course


class DirectPurchaseIssuer:
    """Grants entitlements synchronously, without a payment provider.

    Used for manual grants and the dev/test purchase flow.  Direct grants
    carry no external payment reference.
    """

    def __init__(self, catalog: CatalogRepo, entitlements: EntitlementStore) -> None:
        self._catalog = catalog
        self._entitlements = entitlements

    async def purchase(self, user_id: str, course_id: UUID) -> PurchaseResult:
        course = await self._catalog.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)

        result = await self._entitlements.grant(user_id, course_id)
        ENTITLEMENT_GRANTS.labels(
            source="direct_purchase", outcome=result.outcome.value
        ).inc()

        if result.is_unavailable or result.entitlement is None:
            raise StoreUnavailableError(result.error or "entitlement store unavailable")

        if result.is_created:
            logger.info("Entitlement granted user=%s course=%s", user_id, course_id)
        else:
            logger.info("Course already owned user=%s course=%s", user_id, course_id)

        return PurchaseResult(
            granted=result.is_created,
            entitlement=result.entitlement,
            course=course,
        )
