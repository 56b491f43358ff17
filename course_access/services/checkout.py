"""Checkout session creation at the payment provider.

Both factories attach ``{"userId", "courseId"}`` metadata; Stripe echoes it
back in the ``checkout.session.completed`` event, which is how the webhook
knows whom to grant.
"""

from __future__ import annotations

import logging
import secrets
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

import stripe
from starlette.concurrency import run_in_threadpool

from course_access.core.config import Settings
from course_access.core.errors import CheckoutUnavailableError, InvalidCheckoutError
from course_access.models.course import Course
from course_access.models.payment import CheckoutSession

logger = logging.getLogger(__name__)

CURRENCY = "usd"


class CheckoutSessionFactory(Protocol):
    async def create_session(self, user_id: str, course: Course) -> CheckoutSession: ...


def _require_sellable(course: Course) -> None:
    if course.price <= 0:
        raise InvalidCheckoutError(f"course {course.id} has no price")


def _unit_amount(price: Decimal) -> int:
    """Price in cents."""
    return int((price * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeCheckoutSessionFactory:
    def __init__(self, api_key: str, frontend_url: str) -> None:
        self._api_key = api_key
        self._frontend_url = frontend_url

    async def create_session(self, user_id: str, course: Course) -> CheckoutSession:
        _require_sellable(course)
        course_url = f"{self._frontend_url}/courses/{course.id}"
        product: dict[str, str] = {"name": course.title}
        if course.description:
            product["description"] = course.description
        params = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": CURRENCY,
                        "product_data": product,
                        "unit_amount": _unit_amount(course.price),
                    },
                    "quantity": 1,
                }
            ],
            "metadata": {"userId": user_id, "courseId": str(course.id)},
            "success_url": f"{course_url}?success=1",
            "cancel_url": f"{course_url}?canceled=1",
        }
        # stripe-python is synchronous; keep it off the event loop.
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create, api_key=self._api_key, **params
            )
        except stripe.StripeError as e:
            logger.error(
                "Stripe checkout failed course=%s: %s",
                course.id,
                e.__class__.__name__,
            )
            raise CheckoutUnavailableError("payment provider unavailable") from e

        logger.info(
            "Checkout session created user=%s course=%s session=%s",
            user_id,
            course.id,
            session.id,
        )
        return CheckoutSession(session_id=session.id, redirect_url=session.url)


class DevCheckoutSessionFactory:
    """Used when no real Stripe key is configured.

    Returns a fake session id and redirects straight to the success page;
    no entitlement is granted, use the direct purchase endpoint for that.
    """

    def __init__(self, frontend_url: str) -> None:
        self._frontend_url = frontend_url

    async def create_session(self, user_id: str, course: Course) -> CheckoutSession:
        _require_sellable(course)
        session_id = f"cs_dev_{secrets.token_hex(12)}"
        logger.info(
            "Dev checkout session user=%s course=%s session=%s",
            user_id,
            course.id,
            session_id,
        )
        return CheckoutSession(
            session_id=session_id,
            redirect_url=(
                f"{self._frontend_url}/courses/{course.id}?success=1&dev_mode=true"
            ),
        )


def build_checkout_factory(settings: Settings) -> CheckoutSessionFactory:
    if settings.stripe_live and settings.stripe_secret_key:
        return StripeCheckoutSessionFactory(
            settings.stripe_secret_key, settings.frontend_url
        )
    logger.info("No Stripe secret key configured; checkout runs in dev mode")
    return DevCheckoutSessionFactory(settings.frontend_url)
