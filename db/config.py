"""
db/config.py

Environment-driven database configuration for the ratebook service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def load_env_files() -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` at the project root.

    Variables already present in the process environment win.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = (part.strip() for part in line.split("=", 1))
            if key:
                os.environ.setdefault(key, value.strip('"').strip("'"))


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite postgres:// style URLs to the psycopg driver form.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def resolve_database_url() -> str:
    """
    Resolve the ratebook database URL.

    DATABASE_URL wins; CLOUD_DATABASE_URL is used in cloud-like
    ENVIRONMENTs; LOCAL_DATABASE_URL is the fallback.
    """

    load_env_files()

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    candidates = [os.getenv("DATABASE_URL")]
    if environment in _CLOUD_ENVIRONMENTS:
        candidates.append(os.getenv("CLOUD_DATABASE_URL"))
    candidates.append(os.getenv("LOCAL_DATABASE_URL"))

    for url in candidates:
        if url and url.strip():
            return normalize_postgres_url(url.strip())

    raise RuntimeError(
        "No database URL configured for ratebook imports. Set DATABASE_URL, "
        "or configure LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )


def _env_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Engine and pool settings.

    ``statement_timeout_ms`` bounds single statements such as a 100-row
    bulk insert; 0 disables the limit.
    """

    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle: int = 1800
    statement_timeout_ms: int = 0
    application_name: str = "ratebook-ingestion"


def load_database_settings() -> DatabaseSettings:
    url = resolve_database_url()
    return DatabaseSettings(
        url=url,
        echo=os.getenv("SQL_ECHO", "").strip().lower() in _TRUE_VALUES,
        pool_size=max(1, _env_int("DB_POOL_SIZE", 5)),
        max_overflow=max(0, _env_int("DB_MAX_OVERFLOW", 10)),
        pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
        statement_timeout_ms=max(0, _env_int("DB_STATEMENT_TIMEOUT_MS", 0)),
        application_name=os.getenv("DB_APPLICATION_NAME", "ratebook-ingestion").strip() or "ratebook-ingestion",
    )
