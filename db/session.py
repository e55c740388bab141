"""
db/session.py

SQLAlchemy engine and session factory.

Ratebook imports run in background tasks with their own sessions, so the
engine and factory are created lazily and shared per process.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import DatabaseSettings, load_database_settings


def _connect_args(settings: DatabaseSettings) -> dict[str, Any]:
    connect_args: dict[str, Any] = {"application_name": settings.application_name}
    if settings.statement_timeout_ms:
        connect_args["options"] = f"-c statement_timeout={settings.statement_timeout_ms}"
    return connect_args


def create_db_engine(settings: DatabaseSettings | None = None) -> Engine:
    settings = settings or load_database_settings()
    if not settings.url.startswith("postgresql"):
        # Match-store upserts and the latest-import index are PostgreSQL only.
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    return create_engine(
        settings.url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_recycle=settings.pool_recycle,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        connect_args=_connect_args(settings),
    )


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def _get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        # Import records are read back after commit by the router and the
        # background job, so attributes must not expire.
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    """Lazy session factory. Drop-in replacement for a sessionmaker() call."""
    return _get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
