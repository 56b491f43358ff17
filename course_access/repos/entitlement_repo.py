from __future__ import annotations

import threading
from typing import Protocol
from uuid import UUID

from course_access.models.entitlement import Entitlement, GrantResult
from course_access.repos.catalog_repo import InMemoryCatalogRepo


class EntitlementStore(Protocol):
    """Durable (user, course) -> entitlement mapping.

    ``grant`` never raises for a duplicate: a second grant for the same
    pair, or for an already-used payment reference, returns
    ``GrantResult.already_granted`` carrying the existing row.
    """

    async def grant(
        self,
        user_id: str,
        course_id: UUID,
        external_payment_reference: str | None = None,
    ) -> GrantResult: ...
    async def has_entitlement(self, user_id: str, course_id: UUID) -> bool: ...
    async def get(self, user_id: str, course_id: UUID) -> Entitlement | None: ...
    async def find_by_user(self, user_id: str) -> list[Entitlement]: ...


class InMemoryEntitlementStore:
    """Dict-backed store.  The lock makes check-and-insert atomic, standing in
    for the UNIQUE constraints the Postgres backend relies on.

    Given a catalog, a grant for a course it does not hold comes back
    ``unavailable``, as the courses FK makes it on Postgres.
    """

    def __init__(self, catalog: InMemoryCatalogRepo | None = None) -> None:
        self._catalog = catalog
        self._lock = threading.Lock()
        self._by_pair: dict[tuple[str, UUID], Entitlement] = {}
        self._by_reference: dict[str, Entitlement] = {}

    async def grant(
        self,
        user_id: str,
        course_id: UUID,
        external_payment_reference: str | None = None,
    ) -> GrantResult:
        with self._lock:
            if self._catalog is not None and not self._catalog.has_course(course_id):
                return GrantResult.unavailable(f"course {course_id} does not exist")
            existing = self._by_pair.get((user_id, course_id))
            if existing is None and external_payment_reference is not None:
                existing = self._by_reference.get(external_payment_reference)
            if existing is not None:
                return GrantResult.already_granted(existing)

            ent = Entitlement.new(
                user_id=user_id,
                course_id=course_id,
                external_payment_reference=external_payment_reference,
            )
            self._by_pair[(user_id, course_id)] = ent
            if external_payment_reference is not None:
                self._by_reference[external_payment_reference] = ent
            return GrantResult.created(ent)

    async def has_entitlement(self, user_id: str, course_id: UUID) -> bool:
        return (user_id, course_id) in self._by_pair

    async def get(self, user_id: str, course_id: UUID) -> Entitlement | None:
        return self._by_pair.get((user_id, course_id))

    async def find_by_user(self, user_id: str) -> list[Entitlement]:
        with self._lock:
            owned = [e for (uid, _), e in self._by_pair.items() if uid == user_id]
        return sorted(owned, key=lambda e: e.created_at, reverse=True)
