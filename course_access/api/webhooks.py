"""Payment-provider webhook intake.

The body is read as raw bytes and verified before any JSON parsing.  The
grant is awaited before answering, so a 200 means the entitlement exists;
a store failure answers 503 and the provider redelivers.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel

from course_access.api.dependencies import get_event_verifier, get_payment_processor
from course_access.services.payment_events import PaymentEventProcessor
from course_access.services.payment_verifier import StripeEventVerifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])


class WebhookAckOut(BaseModel):
    received: bool
    ignored: bool


@router.post("/payments", response_model=WebhookAckOut)
async def receive_payment_event(
    request: Request,
    verifier: Annotated[StripeEventVerifier, Depends(get_event_verifier)],
    processor: Annotated[PaymentEventProcessor, Depends(get_payment_processor)],
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
) -> WebhookAckOut:
    payload = await request.body()
    event = verifier.verify(payload, stripe_signature)
    logger.info(
        "Payment event verified type=%s",
        event.event_type,
        extra={"event_id": event.event_id},
    )

    ack = await processor.process(event)
    return WebhookAckOut(received=ack.received, ignored=ack.ignored)
