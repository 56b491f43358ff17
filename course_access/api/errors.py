"""Maps domain exceptions to HTTP responses, in one place.

Services raise the exceptions in course_access.core.errors and never know
about status codes.  Response bodies keep FastAPI's ``{"detail": ...}``
shape so clients see one error format.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from course_access.core.errors import (
    CheckoutUnavailableError,
    CourseNotFoundError,
    EntitlementRequiredError,
    InvalidCheckoutError,
    InvalidWebhookError,
    LessonNotFoundError,
    StoreUnavailableError,
    WebhookNotConfiguredError,
)

logger = logging.getLogger(__name__)


def _detail(status_code: int, detail: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


async def _course_not_found(_request: Request, _exc: Exception) -> JSONResponse:
    return _detail(status.HTTP_404_NOT_FOUND, "Course not found")


async def _lesson_not_found(_request: Request, _exc: Exception) -> JSONResponse:
    return _detail(status.HTTP_404_NOT_FOUND, "Lesson not found")


async def _entitlement_required(_request: Request, _exc: Exception) -> JSONResponse:
    return _detail(status.HTTP_403_FORBIDDEN, "Course not purchased")


async def _validation_failed(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _detail(status.HTTP_400_BAD_REQUEST, jsonable_encoder(exc.errors()))


async def _store_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Store unavailable during %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return _detail(status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable")


async def _invalid_webhook(_request: Request, exc: Exception) -> JSONResponse:
    return _detail(status.HTTP_400_BAD_REQUEST, f"Webhook rejected: {exc}")


async def _webhook_not_configured(_request: Request, _exc: Exception) -> JSONResponse:
    return _detail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Webhook not configured")


async def _invalid_checkout(_request: Request, exc: Exception) -> JSONResponse:
    return _detail(status.HTTP_400_BAD_REQUEST, str(exc))


async def _checkout_unavailable(_request: Request, _exc: Exception) -> JSONResponse:
    return _detail(status.HTTP_502_BAD_GATEWAY, "Payment provider unavailable")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CourseNotFoundError, _course_not_found)
    app.add_exception_handler(LessonNotFoundError, _lesson_not_found)
    app.add_exception_handler(EntitlementRequiredError, _entitlement_required)
    app.add_exception_handler(RequestValidationError, _validation_failed)
    app.add_exception_handler(StoreUnavailableError, _store_unavailable)
    app.add_exception_handler(InvalidWebhookError, _invalid_webhook)
    app.add_exception_handler(WebhookNotConfiguredError, _webhook_not_configured)
    app.add_exception_handler(InvalidCheckoutError, _invalid_checkout)
    app.add_exception_handler(CheckoutUnavailableError, _checkout_unavailable)
