"""Core utilities and configuration."""

from pagegen.core.config import Settings, get_settings
from pagegen.core.database import Base, db_manager, get_session, session_scope
from pagegen.core.logging import (
    db_logger,
    generation_logger,
    get_logger,
    redis_logger,
    setup_logging,
)
from pagegen.core.redis import get_redis, redis_manager

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "db_manager",
    "get_session",
    "session_scope",
    # Logging
    "db_logger",
    "generation_logger",
    "get_logger",
    "redis_logger",
    "setup_logging",
    # Redis
    "get_redis",
    "redis_manager",
]
