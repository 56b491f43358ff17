from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from course_access.api.dependencies import StoreDep, get_checkout_factory, require_user
from course_access.api.ratelimit import PURCHASE_LIMIT, require_rate_limit
from course_access.core.errors import CourseNotFoundError
from course_access.models.principal import Principal
from course_access.services.checkout import CheckoutSessionFactory

router = APIRouter(prefix="/v1/checkout", tags=["checkout"])


class CheckoutIn(BaseModel):
    course_id: UUID


class CheckoutOut(BaseModel):
    redirect_url: str
    session_id: str


@router.post(
    "/sessions",
    response_model=CheckoutOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit(PURCHASE_LIMIT, scope="checkout"))],
)
async def create_checkout_session(
    body: CheckoutIn,
    store: StoreDep,
    principal: Annotated[Principal, Depends(require_user)],
    factory: Annotated[CheckoutSessionFactory, Depends(get_checkout_factory)],
) -> CheckoutOut:
    """Start a hosted checkout.  The entitlement is granted later, by the webhook."""
    course = await store.catalog.get_course(body.course_id)
    if course is None:
        raise CourseNotFoundError(body.course_id)

    session = await factory.create_session(principal.user_id, course)
    return CheckoutOut(redirect_url=session.redirect_url, session_id=session.session_id)
