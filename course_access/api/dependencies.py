from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from course_access.db.store import Store
from course_access.models.principal import Principal
from course_access.services import token_service
from course_access.services.access_gate import AccessGate
from course_access.services.checkout import CheckoutSessionFactory
from course_access.services.payment_events import PaymentEventProcessor
from course_access.services.payment_verifier import StripeEventVerifier
from course_access.services.progress_tracker import ProgressTracker
from course_access.services.purchase_service import DirectPurchaseIssuer

logger = logging.getLogger(__name__)

# Tokens are issued by the identity service; tokenUrl only feeds the docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token", auto_error=False)


def _principal_from_token(raw_token: str) -> Principal:
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return Principal(user_id=str(claims["sub"]))


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    principal = _principal_from_token(raw_token)
    logger.debug("Token validated for user=%s", principal.user_id)
    return principal


def optional_user(
    raw_token: Annotated[str | None, Depends(optional_oauth2_scheme)],
) -> Principal | None:
    """Like require_user, but anonymous requests get None.

    A token that is present but invalid is still rejected with 401.
    """
    if raw_token is None:
        return None
    return _principal_from_token(raw_token)


# ---------------------------------------------------------------------------
# Store handle and services (built per request over the lifespan's store)
# ---------------------------------------------------------------------------


def get_store(request: Request) -> Store:
    return request.app.state.store


StoreDep = Annotated[Store, Depends(get_store)]


def get_access_gate(store: StoreDep) -> AccessGate:
    return AccessGate(store.entitlements)


def get_progress_tracker(
    store: StoreDep,
    gate: Annotated[AccessGate, Depends(get_access_gate)],
) -> ProgressTracker:
    return ProgressTracker(store.catalog, store.progress, gate)


def get_purchase_issuer(store: StoreDep) -> DirectPurchaseIssuer:
    return DirectPurchaseIssuer(store.catalog, store.entitlements)


def get_payment_processor(store: StoreDep) -> PaymentEventProcessor:
    return PaymentEventProcessor(store.entitlements)


def get_event_verifier(request: Request) -> StripeEventVerifier:
    return request.app.state.event_verifier


def get_checkout_factory(request: Request) -> CheckoutSessionFactory:
    return request.app.state.checkout_factory
