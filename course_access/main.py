from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from course_access.api.checkout import router as checkout_router
from course_access.api.courses import router as courses_router
from course_access.api.errors import register_exception_handlers
from course_access.api.health import router as health_router
from course_access.api.lessons import router as lessons_router
from course_access.api.metrics_endpoint import router as metrics_router
from course_access.api.progress import router as progress_router
from course_access.api.purchases import router as purchases_router
from course_access.api.webhooks import router as webhooks_router
from course_access.core.config import SETTINGS
from course_access.core.logging import setup_logging
from course_access.db.redis import connect_redis
from course_access.db.store import build_store, seed_sample_catalog
from course_access.middleware.metrics import MetricsMiddleware
from course_access.middleware.request_context import RequestContextMiddleware
from course_access.services.checkout import build_checkout_factory
from course_access.services.payment_verifier import StripeEventVerifier
from course_access.services.rate_limiter import build_rate_limiter

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Every stateful collaborator is built here and hung off app.state;
    # handlers reach them through course_access.api.dependencies.
    store = build_store(SETTINGS)
    redis_client = await connect_redis(SETTINGS)

    app.state.store = store
    app.state.redis = redis_client
    app.state.rate_limiter = build_rate_limiter(redis_client)
    app.state.event_verifier = StripeEventVerifier(SETTINGS.stripe_webhook_secret)
    app.state.checkout_factory = build_checkout_factory(SETTINGS)

    if SETTINGS.seed_catalog and store.backend == "memory":
        await seed_sample_catalog(store)

    try:
        yield
    finally:
        if redis_client is not None:
            await redis_client.aclose()
            logger.info("Redis connection pool closed")
        await store.close()


app = FastAPI(
    title="course-access-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[SETTINGS.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(lessons_router)
app.include_router(progress_router)
app.include_router(purchases_router)
app.include_router(checkout_router)
app.include_router(webhooks_router)

logger.info(
    "course-access-service configured  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
