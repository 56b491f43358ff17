from __future__ import annotations

from dataclasses import dataclass, field

# Provider event type that carries a completed payment.
PAYMENT_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True, slots=True)
class PaymentEvent:
    """A payment-provider event whose signature has already been verified.

    reference: the provider's checkout-session id, used as the entitlement's
               external_payment_reference (idempotency key).
    metadata:  the key/value pairs we attached at checkout and the provider
               echoed back (``userId``, ``courseId``).
    """

    event_id: str
    event_type: str
    reference: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_payment_completed(self) -> bool:
        return self.event_type == PAYMENT_COMPLETED


@dataclass(frozen=True, slots=True)
class WebhookAck:
    """Acknowledgment returned to the provider (always HTTP 200)."""

    received: bool = True
    ignored: bool = False
    granted: bool = False


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    session_id: str
    redirect_url: str
