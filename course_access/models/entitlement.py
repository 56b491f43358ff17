from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Entitlement:
    """Durable proof that a user may access a course's content.

    Created once, never updated, never deleted.  ``external_payment_reference``
    is the payment provider's checkout-session id, or None for direct grants.
    """

    id: UUID
    user_id: str
    course_id: UUID
    created_at: datetime.datetime
    external_payment_reference: str | None = None

    @staticmethod
    def new(
        *,
        user_id: str,
        course_id: UUID,
        external_payment_reference: str | None = None,
    ) -> Entitlement:
        return Entitlement(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            created_at=datetime.datetime.now(datetime.UTC),
            external_payment_reference=external_payment_reference,
        )


class GrantOutcome(StrEnum):
    CREATED = "created"
    ALREADY_GRANTED = "already_granted"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class GrantResult:
    """Typed outcome of EntitlementStore.grant.

    CREATED / ALREADY_GRANTED carry the entitlement that now exists for the
    pair (the winner's row in the already-granted case).  UNAVAILABLE carries
    the store error message and no entitlement: an infrastructure failure,
    or a course the store does not hold.
    """

    outcome: GrantOutcome
    entitlement: Entitlement | None = None
    error: str | None = None

    @staticmethod
    def created(entitlement: Entitlement) -> GrantResult:
        return GrantResult(outcome=GrantOutcome.CREATED, entitlement=entitlement)

    @staticmethod
    def already_granted(entitlement: Entitlement) -> GrantResult:
        return GrantResult(
            outcome=GrantOutcome.ALREADY_GRANTED, entitlement=entitlement
        )

    @staticmethod
    def unavailable(error: str) -> GrantResult:
        return GrantResult(outcome=GrantOutcome.UNAVAILABLE, error=error)

    @property
    def is_created(self) -> bool:
        return self.outcome is GrantOutcome.CREATED

    @property
    def is_already_granted(self) -> bool:
        return self.outcome is GrantOutcome.ALREADY_GRANTED

    @property
    def is_unavailable(self) -> bool:
        return self.outcome is GrantOutcome.UNAVAILABLE
