"""Alembic environment for pagegen.

The target URL comes from DATABASE_URL (via Settings), normalized to an async
driver, so the same revisions run against PostgreSQL (asyncpg) and local
SQLite (aiosqlite). Online runs are logged through db_logger.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

import pagegen.models  # noqa: F401  (registers every model on Base.metadata)
from pagegen.core.config import get_settings
from pagegen.core.database import Base, normalize_database_url
from pagegen.core.logging import db_logger

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return normalize_database_url(str(get_settings().database_url))


def _configure_and_run(**options: object) -> None:
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=_database_url().startswith("sqlite"),
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure_and_run(connection=connection)


async def _run_online() -> None:
    head = context.get_head_revision()
    version = str(head) if head else "unknown"
    db_logger.migration_start(version=version, description=f"upgrade to {head or 'head'}")

    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    engine = async_engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    succeeded = False
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
        succeeded = True
    finally:
        db_logger.migration_end(version=version, success=succeeded)
        await engine.dispose()


if context.is_offline_mode():
    _configure_and_run(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    asyncio.run(_run_online())
