"""Stripe webhook signature verification.

Verification needs the exact bytes Stripe signed, so the route hands over
the raw body and nothing parses it before the signature is checked.
"""

from __future__ import annotations

import json
import logging

import stripe

from course_access.core.errors import InvalidWebhookError, WebhookNotConfiguredError
from course_access.models.payment import PaymentEvent

logger = logging.getLogger(__name__)

# Stripe's default replay window.
DEFAULT_TOLERANCE_SECONDS = 300


class StripeEventVerifier:
    def __init__(
        self,
        webhook_secret: str | None,
        *,
        tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    ) -> None:
        self._secret = webhook_secret
        self._tolerance = tolerance

    def verify(self, payload: bytes, signature_header: str | None) -> PaymentEvent:
        """Return the verified event, or raise InvalidWebhookError.

        Raises WebhookNotConfiguredError when no signing secret is set.
        """
        if not self._secret:
            logger.error("Webhook received but STRIPE_WEBHOOK_SECRET is not configured")
            raise WebhookNotConfiguredError("webhook secret not configured")
        if not signature_header:
            logger.warning("Webhook rejected: missing Stripe-Signature header")
            raise InvalidWebhookError("missing signature")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, signature_header, self._secret, self._tolerance
            )
            data = json.loads(body)
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook rejected: %s", e)
            raise InvalidWebhookError("invalid signature") from e
        except ValueError as e:
            # UnicodeDecodeError and JSONDecodeError are both ValueErrors.
            logger.warning("Webhook rejected: unparseable payload")
            raise InvalidWebhookError("invalid payload") from e

        return _to_payment_event(data)


def _to_payment_event(data: object) -> PaymentEvent:
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise InvalidWebhookError("payload is not a Stripe event")

    inner = data.get("data")
    obj = inner.get("object") if isinstance(inner, dict) else None
    if not isinstance(obj, dict):
        obj = {}
    metadata = obj.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}

    reference = obj.get("id")
    return PaymentEvent(
        event_id=str(data.get("id", "")),
        event_type=data["type"],
        reference=reference if isinstance(reference, str) else None,
        metadata={str(k): str(v) for k, v in metadata.items() if v is not None},
    )
