"""The store handle: one object owning every repo and their shared resources.

Built once in the application lifespan by ``build_store`` and closed at
shutdown.  Handlers never import a module-level client; they receive the
handle through ``course_access.api.dependencies.get_store``.

With DATABASE_URL set the handle is a PgStore over a single async engine;
without it (local dev, tests) an InMemoryStore is used and no database
server is needed.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Protocol

from sqlalchemy import text

from course_access.core.config import Settings
from course_access.db.engine import create_engine_and_sessions
from course_access.db.store_errors import store_errors
from course_access.models.course import Course, Lesson
from course_access.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from course_access.repos.entitlement_repo import (
    EntitlementStore,
    InMemoryEntitlementStore,
)
from course_access.repos.pg_catalog_repo import PgCatalogRepo
from course_access.repos.pg_entitlement_repo import PgEntitlementStore
from course_access.repos.pg_progress_repo import PgProgressRepo
from course_access.repos.progress_repo import InMemoryProgressRepo, ProgressRepo

logger = logging.getLogger(__name__)


class Store(Protocol):
    backend: str
    catalog: CatalogRepo
    entitlements: EntitlementStore
    progress: ProgressRepo

    async def ping(self) -> None: ...
    async def close(self) -> None: ...


class InMemoryStore:
    backend = "memory"

    def __init__(self) -> None:
        catalog = InMemoryCatalogRepo()
        self.catalog: CatalogRepo = catalog
        self.entitlements: EntitlementStore = InMemoryEntitlementStore(catalog)
        self.progress: ProgressRepo = InMemoryProgressRepo(catalog)

    async def ping(self) -> None:
        return None

    async def close(self) -> None:
        return None


class PgStore:
    backend = "postgres"

    def __init__(self, database_url: str) -> None:
        self._engine, sessions = create_engine_and_sessions(database_url)
        self.catalog: CatalogRepo = PgCatalogRepo(sessions)
        self.entitlements: EntitlementStore = PgEntitlementStore(sessions)
        self.progress: ProgressRepo = PgProgressRepo(sessions)

    async def ping(self) -> None:
        """Raise StoreUnavailableError unless a trivial query succeeds."""
        async with store_errors(), self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("Database engine disposed")


def build_store(settings: Settings) -> Store:
    if settings.database_url:
        return PgStore(settings.database_url)
    logger.info("No DATABASE_URL configured; using in-memory store")
    return InMemoryStore()


async def seed_sample_catalog(store: Store) -> Course:
    """Seed one paid course with four lessons for local development."""
    course = Course.new(
        title="Full-Stack Web Development",
        description="Build and deploy a complete web application.",
        price=Decimal("49.99"),
        instructor_name="Alex Rivera",
    )
    await store.catalog.add_course(course)
    for order, title in enumerate(
        ("Project setup", "Routing and views", "Persistence", "Deployment"),
        start=1,
    ):
        await store.catalog.add_lesson(
            Lesson.new(
                course_id=course.id,
                title=title,
                order=order,
                content=f"Lesson {order}: {title}",
            )
        )
    logger.info("Seeded sample course id=%s", course.id)
    return course
