"""Rate limiting dependency for FastAPI routes.

A dependency rather than middleware, so only the routes that declare it
are limited: progress writes, purchases and checkout creation.  Health,
metrics and the payment webhook are never limited; the provider's
redelivery must always get through.

Keys use the most specific identity available: the token's ``sub`` for
authenticated requests, the client IP otherwise.  X-RateLimit-* headers
are attached to every limited response so clients can self-throttle.
"""

from __future__ import annotations

import logging

import jwt as pyjwt
from fastapi import HTTPException, Request, Response, status

from course_access.core.metrics import RATE_LIMIT_HITS
from course_access.services.rate_limiter import (
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
)

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = RateLimitConfig()

# Progress writes fire on every lesson completion toggle.
PROGRESS_WRITE_LIMIT = RateLimitConfig(capacity=60, refill_rate=1.0)
# Purchases and checkout sessions are rare per user.
PURCHASE_LIMIT = RateLimitConfig(capacity=10, refill_rate=0.2)


def require_rate_limit(config: RateLimitConfig = _DEFAULT_CONFIG, *, scope: str = ""):
    """Dependency factory: enforce a token bucket on a route.

    ``scope`` separates buckets so e.g. checkout attempts do not drain the
    progress-write allowance.

        @router.put(..., dependencies=[Depends(require_rate_limit(PROGRESS_WRITE_LIMIT, scope="progress"))])
    """

    async def _check(request: Request, response: Response) -> None:
        limiter: RateLimiter = request.app.state.rate_limiter
        identity = _build_key(request)
        key = f"{scope}:{identity}" if scope else identity
        result: RateLimitResult = await limiter.check(key, config)

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

        if not result.allowed:
            RATE_LIMIT_HITS.labels(key_type=identity.split(":", 1)[0]).inc()
            logger.warning("Rate limit exceeded key=%s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check


def _build_key(request: Request) -> str:
    """Build a rate-limit key from the best available identity.

    The token is decoded without verification: only ``sub`` is needed for
    keying, and a forged ``sub`` merely gets its own bucket.  require_user
    still performs the real check.
    """
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = pyjwt.decode(auth_header[7:], options={"verify_signature": False})
        except pyjwt.InvalidTokenError:
            claims = {}
        sub = claims.get("sub")
        if sub:
            return f"user:{sub}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"
