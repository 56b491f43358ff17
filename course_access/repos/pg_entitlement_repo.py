"""PostgreSQL implementation of EntitlementStore.

Race safety comes from the table's UNIQUE(user_id, course_id) and
UNIQUE(external_payment_reference) constraints.  ``grant`` inserts with
ON CONFLICT DO NOTHING; when the insert returns no row, another writer got
there first and its row is read back as the already-granted result.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from course_access.db.store_errors import store_errors
from course_access.db.tables import EntitlementRow
from course_access.models.entitlement import Entitlement, GrantResult

logger = logging.getLogger(__name__)


class PgEntitlementStore:
    """Satisfies the EntitlementStore Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def grant(
        self,
        user_id: str,
        course_id: UUID,
        external_payment_reference: str | None = None,
    ) -> GrantResult:
        candidate = Entitlement.new(
            user_id=user_id,
            course_id=course_id,
            external_payment_reference=external_payment_reference,
        )
        stmt = (
            insert(EntitlementRow)
            .values(
                id=candidate.id,
                user_id=candidate.user_id,
                course_id=candidate.course_id,
                external_payment_reference=candidate.external_payment_reference,
                created_at=candidate.created_at,
            )
            .on_conflict_do_nothing()
            .returning(EntitlementRow)
        )
        try:
            async with self._sessions.begin() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
                if row is not None:
                    return GrantResult.created(_row_to_entitlement(row))

                conditions = [
                    (EntitlementRow.user_id == user_id)
                    & (EntitlementRow.course_id == course_id)
                ]
                if external_payment_reference is not None:
                    conditions.append(
                        EntitlementRow.external_payment_reference
                        == external_payment_reference
                    )
                lookup = select(EntitlementRow).where(or_(*conditions)).limit(1)
                existing = (await session.execute(lookup)).scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            logger.exception("Entitlement grant failed user=%s course=%s", user_id, course_id)
            return GrantResult.unavailable(str(e))

        if existing is None:
            # Conflict reported but the winning row is not visible.
            return GrantResult.unavailable("conflicting entitlement not found")
        return GrantResult.already_granted(_row_to_entitlement(existing))

    async def has_entitlement(self, user_id: str, course_id: UUID) -> bool:
        stmt = select(EntitlementRow.id).where(
            EntitlementRow.user_id == user_id,
            EntitlementRow.course_id == course_id,
        )
        async with store_errors(), self._sessions() as session:
            return (await session.execute(stmt)).first() is not None

    async def get(self, user_id: str, course_id: UUID) -> Entitlement | None:
        stmt = select(EntitlementRow).where(
            EntitlementRow.user_id == user_id,
            EntitlementRow.course_id == course_id,
        )
        async with store_errors(), self._sessions() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _row_to_entitlement(row) if row is not None else None

    async def find_by_user(self, user_id: str) -> list[Entitlement]:
        stmt = (
            select(EntitlementRow)
            .where(EntitlementRow.user_id == user_id)
            .order_by(EntitlementRow.created_at.desc())
        )
        async with store_errors(), self._sessions() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_entitlement(r) for r in rows]


def _row_to_entitlement(row: EntitlementRow) -> Entitlement:
    return Entitlement(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        created_at=row.created_at,
        external_payment_reference=row.external_payment_reference,
    )
