"""Direct purchase and the caller's purchase history.

POST /v1/courses/{course_id}/purchase grants immediately, without a
payment provider (manual grants, dev and test flows).  Buying an owned
course is not an error: it answers 200 with the existing entitlement.
"""

from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from course_access.api.dependencies import StoreDep, get_purchase_issuer, require_user
from course_access.api.ratelimit import PURCHASE_LIMIT, require_rate_limit
from course_access.models.principal import Principal
from course_access.services.purchase_service import DirectPurchaseIssuer

router = APIRouter(prefix="/v1", tags=["purchases"])


class EntitlementOut(BaseModel):
    id: UUID
    course_id: UUID
    purchased_at: datetime.datetime
    external_payment_reference: str | None = None


class PurchaseOut(BaseModel):
    granted: bool
    already_owned: bool
    course_title: str
    entitlement: EntitlementOut


class PurchasedCourseOut(BaseModel):
    id: UUID
    title: str
    description: str
    price: float
    instructor_name: str | None
    image_url: str | None


class PurchaseRecordOut(BaseModel):
    purchase_id: UUID
    purchased_at: datetime.datetime
    course: PurchasedCourseOut


class PurchaseListOut(BaseModel):
    purchases: list[PurchaseRecordOut]
    total: int


@router.post(
    "/courses/{course_id}/purchase",
    response_model=PurchaseOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit(PURCHASE_LIMIT, scope="purchase"))],
)
async def purchase_course(
    course_id: UUID,
    response: Response,
    principal: Annotated[Principal, Depends(require_user)],
    issuer: Annotated[DirectPurchaseIssuer, Depends(get_purchase_issuer)],
) -> PurchaseOut:
    result = await issuer.purchase(principal.user_id, course_id)
    if not result.granted:
        response.status_code = status.HTTP_200_OK

    ent = result.entitlement
    return PurchaseOut(
        granted=result.granted,
        already_owned=not result.granted,
        course_title=result.course.title,
        entitlement=EntitlementOut(
            id=ent.id,
            course_id=ent.course_id,
            purchased_at=ent.created_at,
            external_payment_reference=ent.external_payment_reference,
        ),
    )


@router.get("/users/me/purchases", response_model=PurchaseListOut)
async def list_my_purchases(
    store: StoreDep,
    principal: Annotated[Principal, Depends(require_user)],
) -> PurchaseListOut:
    records: list[PurchaseRecordOut] = []
    for ent in await store.entitlements.find_by_user(principal.user_id):
        course = await store.catalog.get_course(ent.course_id)
        if course is None:
            continue
        records.append(
            PurchaseRecordOut(
                purchase_id=ent.id,
                purchased_at=ent.created_at,
                course=PurchasedCourseOut(
                    id=course.id,
                    title=course.title,
                    description=course.description,
                    price=float(course.price),
                    instructor_name=course.instructor_name,
                    image_url=course.image_url,
                ),
            )
        )
    return PurchaseListOut(purchases=records, total=len(records))
