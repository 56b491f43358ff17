"""Health and readiness endpoints.

/health is liveness: it always answers 200 and reports dependency state in
the body, because restarting the process would not fix a database outage.
/ready is readiness: 503 while the entitlement store is unreachable, so
the load balancer stops routing here until it recovers.  Redis is optional
(rate limiting falls back to in-memory buckets) and never fails readiness.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response, status
from redis.exceptions import RedisError

from course_access.api.dependencies import StoreDep
from course_access.core.errors import StoreUnavailableError
from course_access.db.store import Store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _store_check(store: Store) -> str:
    try:
        await store.ping()
    except StoreUnavailableError:
        return "unavailable"
    return "ok"


async def _redis_check(request: Request) -> str:
    client = request.app.state.redis
    if client is None:
        return "not_configured"
    try:
        await client.ping()
    except (RedisError, OSError):
        logger.warning("Redis health check failed")
        return "degraded"
    return "ok"


@router.get("/health")
async def health(request: Request, store: StoreDep) -> dict:
    checks = {
        "store": await _store_check(store),
        "redis": await _redis_check(request),
    }
    overall = "ok" if all(v in ("ok", "not_configured") for v in checks.values()) else "degraded"
    return {"status": overall, "backend": store.backend, "checks": checks}


@router.get("/ready")
async def ready(store: StoreDep) -> Response:
    if await _store_check(store) != "ok":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
