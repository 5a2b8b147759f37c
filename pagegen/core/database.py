"""Database configuration and session management.

Features:
- Async SQLAlchemy with connection pooling (PostgreSQL via asyncpg)
- SQLite via aiosqlite for local runs and tests
- Slow query logging (>100ms at WARNING)
- Connection error logging with masked strings
- Transaction failure logging with rollback context
"""

import re
import time
from collections.abc import AsyncGenerator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import JSON, String

from pagegen.core.config import Settings, get_settings
from pagegen.core.logging import db_logger, get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


def normalize_database_url(db_url: str) -> str:
    """Convert postgres:// style URLs to the asyncpg driver URL."""
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return db_url


POSTGRES_ONLY_DEFAULTS = ("gen_random_uuid()", "::jsonb", "now()")


def adapt_metadata_for_sqlite() -> None:
    """Swap PostgreSQL-only column types and server defaults for SQLite ones.

    UUID becomes String(36) and JSONB becomes JSON. Server defaults SQLite
    cannot evaluate are dropped; the ORM-side defaults still apply.
    """
    for table in Base.metadata.tables.values():
        for column in table.columns:
            if isinstance(column.type, UUID):
                column.type = String(36)
            elif isinstance(column.type, JSONB):
                column.type = JSON()

            if column.server_default is not None:
                default_text = str(getattr(column.server_default, "arg", ""))
                if any(pg in default_text for pg in POSTGRES_ONLY_DEFAULTS):
                    column.server_default = None


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on foreign key enforcement for every SQLite connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_conn: Any, connection_record: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_options(settings: Settings) -> dict[str, Any]:
    """Pool and asyncpg connect options for server databases."""
    connect_args: dict[str, Any] = {
        "timeout": settings.db_connect_timeout,
        "command_timeout": settings.db_command_timeout,
    }
    if settings.environment == "production":
        # asyncpg takes ssl, not sslmode
        connect_args["ssl"] = "require"
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_pre_ping": True,
        "connect_args": connect_args,
    }


class DatabaseManager:
    """Owns the process-wide async engine and session factory."""

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init_db() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call init_db() first.")
        return self._session_factory

    @property
    def is_sqlite(self) -> bool:
        return self._engine is not None and self._engine.dialect.name == "sqlite"

    def init_db(self) -> None:
        """Create the engine for DATABASE_URL.

        SQLite files get their parent directory created and foreign keys
        switched on; other backends get a sized, pre-pinged pool.
        """
        settings = get_settings()
        db_url = normalize_database_url(settings.database_url)
        url = make_url(db_url)

        try:
            if url.get_backend_name() == "sqlite":
                if url.database and url.database != ":memory:":
                    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
                engine = create_async_engine(db_url, echo=settings.debug)
                enable_sqlite_foreign_keys(engine)
            else:
                engine = create_async_engine(
                    db_url, echo=settings.debug, **_engine_options(settings)
                )
        except (SQLAlchemyError, OSError, ValueError) as e:
            db_logger.connection_error(e, db_url)
            raise

        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine ready", extra={"dialect": engine.dialect.name})

    async def create_all(self) -> None:
        """Create tables directly. Only for SQLite dev runs; servers use alembic."""
        if self.is_sqlite:
            adapt_metadata_for_sqlite()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connections closed")

    async def check_connection(self) -> bool:
        """Run SELECT 1; connection problems are logged and reported as False."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            db_logger.connection_error(e, get_settings().database_url)
            return False
        return True


db_manager = DatabaseManager()


_TABLE_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'relation "([^"]+)"',
        r"table '([^']+)'",
        r"no such table: (\w+)",
        r'INSERT INTO "?([^\s"(]+)"?',
        r'UPDATE "?([^\s"]+)"?',
        r'DELETE FROM "?([^\s"]+)"?',
    )
)


def _table_from_error(error: Exception) -> str | None:
    message = str(error)
    for pattern in _TABLE_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


@asynccontextmanager
async def _unit_of_work(context: str) -> AsyncGenerator[AsyncSession, None]:
    """Session committed on exit and rolled back (and logged) on database errors.

    Units of work slower than DB_SLOW_QUERY_THRESHOLD_MS are logged as slow.
    """
    threshold_ms = get_settings().db_slow_query_threshold_ms
    started = time.monotonic()
    async with db_manager.session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            db_logger.transaction_failure(e, table=_table_from_error(e), context=context)
            raise
        finally:
            elapsed_ms = (time.monotonic() - started) * 1000
            if elapsed_ms > threshold_ms:
                db_logger.slow_query(query=context, duration_ms=elapsed_ms)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one unit of work per request."""
    async with _unit_of_work("request") as session:
        yield session


def session_scope() -> AbstractAsyncContextManager[AsyncSession]:
    """Unit of work for workers and scheduled jobs.

    Usage:
        async with session_scope() as session:
            ...
    """
    return _unit_of_work("background")
