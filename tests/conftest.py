"""Pytest configuration and fixtures.

Provides fixtures for:
- Database mocking with SQLite in-memory
- Redis mocking
- FastAPI async test client
- Settings override for testing
- A seeded business with keywords and service areas
"""

from collections.abc import AsyncGenerator, Generator
from typing import Any
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import pagegen.models  # noqa: F401
from pagegen.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from pagegen.core.config import get_settings
from pagegen.core.database import (
    Base,
    DatabaseManager,
    adapt_metadata_for_sqlite,
    db_manager,
    enable_sqlite_foreign_keys,
)
from pagegen.core.redis import RedisManager, redis_manager
from pagegen.models.business import Business
from pagegen.schemas.business import BusinessCreate
from pagegen.schemas.keyword import KeywordCreate, ServiceAreaCreate
from pagegen.services.business import BusinessService
from pagegen.services.keyword import KeywordService
from pagegen.services.service_area import ServiceAreaService

# Scores 70: every required section plus one optional section
FULL_QUESTIONNAIRE: dict[str, Any] = {
    "business": {"tagline": "Fast, friendly plumbing"},
    "services": {
        "offerings": [
            {"name": "Drain Cleaning", "isPrimary": True},
            {"name": "Water Heater Repair", "slug": "water-heaters"},
        ]
    },
    "serviceAreas": {"primary": ["Sterling", "Ashburn"]},
    "audience": {"targetDescription": "Homeowners in Loudoun County"},
    "brand": {"voiceTone": "Friendly", "callToAction": "Call today"},
}

# ---------------------------------------------------------------------------
# Settings Fixtures
# ---------------------------------------------------------------------------


TEST_ENV = {
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "LOG_LEVEL": "DEBUG",
    "LOG_FORMAT": "text",
    "AUTH_REQUIRED": "false",
    "RATE_LIMIT_ENABLED": "false",
    "SCHEDULER_ENABLED": "false",
    "JOB_DISPATCH_MODE": "poll",
    "MIN_QUESTIONNAIRE_COMPLETENESS": "40",
}


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Pin settings to test values; tests may setenv and clear the cache again."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ("ANTHROPIC_API_KEY", "API_TOKEN", "SQS_QUEUE_URL", "REDIS_URL"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with a fresh schema for every test.

    StaticPool keeps the single in-memory connection alive for the test.
    """
    adapt_metadata_for_sqlite()

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def async_session_factory(
    async_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(
    async_session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_manager(
    async_engine: AsyncEngine,
    async_session_factory: async_sessionmaker[AsyncSession],
) -> Generator[DatabaseManager, None, None]:
    """Point the global database manager at the test engine."""
    original_engine = db_manager._engine
    original_factory = db_manager._session_factory

    db_manager._engine = async_engine
    db_manager._session_factory = async_session_factory

    yield db_manager

    db_manager._engine = original_engine
    db_manager._session_factory = original_factory


# ---------------------------------------------------------------------------
# Redis Fixtures
# ---------------------------------------------------------------------------


class MockRedis:
    """In-memory stand-in for the redis.asyncio client."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._ttls: dict[str, int] = {}

    async def get(self, key: str) -> bytes | None:
        value = self._data.get(key)
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode()

    async def set(self, key: str, value: str | bytes, ex: int | None = None) -> bool:
        self._data[key] = value
        if ex:
            self._ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            if key in self._data:
                del self._data[key]
                count += 1
            self._ttls.pop(key, None)
        return count

    async def incr(self, key: str) -> int:
        self._data[key] = int(self._data.get(key, 0)) + 1
        return int(self._data[key])

    async def expire(self, key: str, seconds: int) -> bool:
        if key in self._data:
            self._ttls[key] = seconds
            return True
        return False

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self._data.clear()
        self._ttls.clear()


@pytest.fixture
def mock_redis() -> MockRedis:
    return MockRedis()


@pytest.fixture
def mock_redis_manager(mock_redis: MockRedis) -> Generator[RedisManager, None, None]:
    """Mock the global Redis manager for testing."""
    original_pool = redis_manager._pool
    original_client = redis_manager._client
    original_circuit = redis_manager._circuit_breaker
    original_available = redis_manager._available

    redis_manager._pool = MagicMock()
    redis_manager._client = mock_redis  # type: ignore[assignment]
    redis_manager._circuit_breaker = CircuitBreaker(
        CircuitBreakerConfig(failure_threshold=5, recovery_timeout=30.0),
        name="redis",
    )
    redis_manager._available = True

    yield redis_manager

    redis_manager._pool = original_pool
    redis_manager._client = original_client
    redis_manager._circuit_breaker = original_circuit
    redis_manager._available = original_available


# ---------------------------------------------------------------------------
# FastAPI Test Client Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app():
    """Create FastAPI app for testing."""
    from pagegen.main import create_app

    return create_app()


@pytest.fixture
async def async_client(
    app,
    mock_db_manager: DatabaseManager,
    mock_redis_manager: RedisManager,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client. The app lifespan is not run."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client


# ---------------------------------------------------------------------------
# Data Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def business(db_session: AsyncSession) -> Business:
    """Business with a 70% questionnaire, three keywords and two service areas.

    keyword-service-area fans out to 3 x 2 = 6 pages, starting with
    /emergency-plumber/sterling-va.
    """
    service = BusinessService(db_session)
    created = await service.create_business(
        BusinessCreate(name="Acme Plumbing", industry="Plumbing", phone="555-0100")
    )
    await service.save_questionnaire(created.id, FULL_QUESTIONNAIRE)

    keywords = KeywordService(db_session)
    await keywords.create_keyword(
        created.id, KeywordCreate(keyword="Emergency Plumber", priority=8)
    )
    await keywords.create_keyword(
        created.id, KeywordCreate(keyword="Drain Cleaning", priority=5)
    )
    await keywords.create_keyword(
        created.id, KeywordCreate(keyword="Plomero", language="es", priority=3)
    )

    areas = ServiceAreaService(db_session)
    await areas.create_service_area(
        created.id, ServiceAreaCreate(city="Sterling", state="VA", priority=2)
    )
    await areas.create_service_area(
        created.id, ServiceAreaCreate(city="Ashburn", state="VA", priority=1)
    )

    await db_session.commit()
    return created
