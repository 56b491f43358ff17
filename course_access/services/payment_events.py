"""Turns verified payment-provider events into entitlements, exactly once.

The provider delivers at least once, so the same completion event may
arrive several times.  Idempotency rests on the entitlement store: the
checkout-session id is stored as the entitlement's external payment
reference, and a replay comes back as ``already_granted``.

Every outcome except a store failure is acknowledged.  A store failure
raises StoreUnavailableError so the webhook answers 5xx and the provider
redelivers later.
"""

from __future__ import annotations

import logging
from uuid import UUID

from course_access.core.errors import StoreUnavailableError
from course_access.core.metrics import ENTITLEMENT_GRANTS, PAYMENT_EVENTS
from course_access.models.payment import PaymentEvent, WebhookAck
from course_access.repos.entitlement_repo import EntitlementStore

logger = logging.getLogger(__name__)


class PaymentEventProcessor:
    def __init__(self, entitlements: EntitlementStore) -> None:
        self._entitlements = entitlements

    async def process(self, event: PaymentEvent) -> WebhookAck:
        if not event.is_payment_completed:
            logger.info(
                "Ignoring payment event type=%s",
                event.event_type,
                extra={"event_id": event.event_id},
            )
            PAYMENT_EVENTS.labels(result="ignored_type").inc()
            return WebhookAck(ignored=True)

        user_id = event.metadata.get("userId")
        course_raw = event.metadata.get("courseId")
        course_id = _parse_uuid(course_raw)
        if not user_id or course_id is None:
            logger.warning(
                "Payment event missing metadata userId=%r courseId=%r",
                user_id,
                course_raw,
                extra={"event_id": event.event_id},
            )
            PAYMENT_EVENTS.labels(result="ignored_metadata").inc()
            return WebhookAck(ignored=True)

        result = await self._entitlements.grant(user_id, course_id, event.reference)
        ENTITLEMENT_GRANTS.labels(
            source="payment_event", outcome=result.outcome.value
        ).inc()

        if result.is_unavailable:
            PAYMENT_EVENTS.labels(result="failed").inc()
            logger.error(
                "Entitlement store unavailable for payment reference=%s: %s",
                event.reference,
                result.error,
                extra={"event_id": event.event_id},
            )
            raise StoreUnavailableError(result.error or "entitlement store unavailable")

        if result.is_created:
            PAYMENT_EVENTS.labels(result="granted").inc()
            logger.info(
                "Entitlement granted from payment user=%s course=%s reference=%s",
                user_id,
                course_id,
                event.reference,
                extra={"event_id": event.event_id},
            )
            return WebhookAck(granted=True)

        PAYMENT_EVENTS.labels(result="duplicate").inc()
        logger.info(
            "Duplicate payment event for reference=%s",
            event.reference,
            extra={"event_id": event.event_id},
        )
        return WebhookAck()


def _parse_uuid(raw: str | None) -> UUID | None:
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        return None
