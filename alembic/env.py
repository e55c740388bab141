from __future__ import annotations

import logging
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url
from db.models import (  # noqa: F401
    ProviderCapMapping,
    ProviderRate,
    RatebookImport,
    Vehicle,
    VehicleCapMatch,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)
else:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")

target_metadata = Base.metadata
logger = logging.getLogger("alembic.env")


def _migration_url() -> str:
    """
    Pick the migration target.

    `-x db_url=...` beats ALEMBIC_DATABASE_URL, which beats the ini's
    sqlalchemy.url, which beats the application's own URL resolution.
    """

    load_env_files()

    x_args = context.get_x_argument(as_dictionary=True)
    ini_url = (config.get_main_option("sqlalchemy.url") or "").strip()
    for candidate in (x_args.get("db_url"), os.getenv("ALEMBIC_DATABASE_URL"), ini_url):
        if candidate:
            url = normalize_postgres_url(candidate)
            break
    else:
        url = resolve_database_url()

    if not url.startswith("postgresql"):
        raise RuntimeError("Ratebook migrations use partial indexes and JSONB; PostgreSQL only.")
    return url


def _configure(**kwargs: object) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=_migration_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _migration_url()
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            logger.info("Running ratebook migrations")
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
