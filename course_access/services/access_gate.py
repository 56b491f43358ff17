from __future__ import annotations

import logging
from uuid import UUID

from course_access.core.errors import EntitlementRequiredError
from course_access.core.metrics import ACCESS_DECISIONS
from course_access.repos.entitlement_repo import EntitlementStore

logger = logging.getLogger(__name__)


class AccessGate:
    """Allow/deny decision over the entitlement store.

    Callers resolve course/lesson existence first; the gate only answers
    "does this user own this course".
    """

    def __init__(self, entitlements: EntitlementStore) -> None:
        self._entitlements = entitlements

    async def can_access_course_content(self, user_id: str, course_id: UUID) -> bool:
        allowed = await self._entitlements.has_entitlement(user_id, course_id)
        ACCESS_DECISIONS.labels(decision="allow" if allowed else "deny").inc()
        return allowed

    async def require_course_access(self, user_id: str, course_id: UUID) -> None:
        if not await self.can_access_course_content(user_id, course_id):
            logger.warning(
                "Access denied: user=%s has no entitlement for course=%s",
                user_id,
                course_id,
            )
            raise EntitlementRequiredError(user_id, course_id)
