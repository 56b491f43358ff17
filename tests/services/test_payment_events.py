from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from course_access.core.errors import StoreUnavailableError
from course_access.models.entitlement import GrantResult
from course_access.models.payment import PaymentEvent, WebhookAck
from course_access.repos.entitlement_repo import InMemoryEntitlementStore
from course_access.services.payment_events import PaymentEventProcessor


def _event(
    metadata: dict[str, str],
    *,
    reference: str = "cs_1",
    event_type: str = "checkout.session.completed",
) -> PaymentEvent:
    return PaymentEvent(
        event_id="evt_1",
        event_type=event_type,
        reference=reference,
        metadata=metadata,
    )


def test_completed_event_grants_with_reference() -> None:
    entitlements = InMemoryEntitlementStore()
    course_id = uuid4()

    ack = asyncio.run(
        PaymentEventProcessor(entitlements).process(
            _event({"userId": "u1", "courseId": str(course_id)})
        )
    )
    assert ack == WebhookAck(granted=True)

    ent = asyncio.run(entitlements.get("u1", course_id))
    assert ent is not None
    assert ent.external_payment_reference == "cs_1"


def test_replay_is_acknowledged_without_second_grant() -> None:
    entitlements = InMemoryEntitlementStore()
    processor = PaymentEventProcessor(entitlements)
    event = _event({"userId": "u1", "courseId": str(uuid4())})

    asyncio.run(processor.process(event))
    ack = asyncio.run(processor.process(event))
    assert ack == WebhookAck()
    assert len(asyncio.run(entitlements.find_by_user("u1"))) == 1


def test_other_event_types_are_ignored() -> None:
    entitlements = InMemoryEntitlementStore()
    ack = asyncio.run(
        PaymentEventProcessor(entitlements).process(
            _event({"userId": "u1", "courseId": str(uuid4())}, event_type="charge.refunded")
        )
    )
    assert ack.ignored is True
    assert asyncio.run(entitlements.find_by_user("u1")) == []


@pytest.mark.parametrize(
    "metadata",
    [
        {},
        {"userId": "u1"},
        {"courseId": "00000000-0000-0000-0000-000000000001"},
        {"userId": "", "courseId": "00000000-0000-0000-0000-000000000001"},
        {"userId": "u1", "courseId": "course-42"},
    ],
)
def test_incomplete_metadata_is_ignored(metadata: dict[str, str]) -> None:
    entitlements = InMemoryEntitlementStore()
    ack = asyncio.run(PaymentEventProcessor(entitlements).process(_event(metadata)))
    assert ack.ignored is True
    assert ack.granted is False


class _DownStore(InMemoryEntitlementStore):
    async def grant(self, user_id, course_id, external_payment_reference=None):
        return GrantResult.unavailable("timeout")


def test_store_failure_raises_for_redelivery() -> None:
    processor = PaymentEventProcessor(_DownStore())
    with pytest.raises(StoreUnavailableError, match="timeout"):
        asyncio.run(processor.process(_event({"userId": "u1", "courseId": str(uuid4())})))
