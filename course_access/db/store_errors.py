from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError

from course_access.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_errors() -> AsyncIterator[None]:
    """Translate driver, ORM and connection failures into StoreUnavailableError.

    Uniqueness conflicts never reach here: repos resolve them with
    ON CONFLICT clauses.
    """
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        logger.error("Store operation failed: %s", e.__class__.__name__)
        raise StoreUnavailableError(str(e)) from e
