from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.config import get_logging_settings
from app.providers import available_providers

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, get_logging_settings().level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _verify_database() -> None:
    """
    Fail startup when the database is unreachable or not migrated.

    Resolving the URL raises first when no database is configured at all.
    Tables are never created here; run `alembic upgrade head`.
    """

    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy.exc import SQLAlchemyError

    import db.models  # noqa: F401
    from db.base import Base
    from db.session import get_engine

    try:
        with get_engine().connect() as connection:
            present = set(sa_inspect(connection).get_table_names())
    except SQLAlchemyError as exc:
        raise RuntimeError("Ratebook database unavailable.") from exc

    missing = sorted(set(Base.metadata.tables) - present)
    if missing:
        logger.critical("Ratebook tables missing: %s. Run 'alembic upgrade head'.", ", ".join(missing))
        raise RuntimeError(f"Ratebook schema not migrated; missing tables: {', '.join(missing)}")

    logger.info("Ratebook database verified tables=%d", len(Base.metadata.tables))


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _verify_database()
    yield


def create_app(*, check_startup: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    ``check_startup=False`` skips the database check, for tests that
    override the session dependency.
    """

    _configure_logging()

    application = FastAPI(
        title="Ratebook Ingestion API",
        version="1.0.0",
        lifespan=_lifespan if check_startup else None,
    )

    from app.api.routers import ratebooks_router

    application.include_router(ratebooks_router)

    @application.get("/health")
    def healthcheck() -> dict[str, object]:
        return {"status": "ok", "providers": available_providers()}

    return application
