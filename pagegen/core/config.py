"""Application configuration loaded from environment variables.

All configuration is via environment variables (or a local .env file).
No hardcoded URLs, ports, or credentials.
"""

from functools import lru_cache

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="pagegen")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # Server
    port: int = Field(default=8000, description="Port to bind to")
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/pagegen.db",
        description="Database connection string (PostgreSQL in production)",
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    db_slow_query_threshold_ms: int = Field(
        default=100, description="Threshold for slow query warnings (ms)"
    )
    db_connect_timeout: int = Field(
        default=60, description="Connection timeout in seconds"
    )
    db_command_timeout: int = Field(
        default=60, description="Command timeout in seconds"
    )
    db_create_all: bool = Field(
        default=False,
        description="Create tables on startup instead of running migrations (SQLite dev)",
    )

    # Redis
    redis_url: RedisDsn | None = Field(
        default=None,
        description="Redis connection string for rate limiting and caching",
    )
    redis_pool_size: int = Field(default=10, description="Redis connection pool size")
    redis_connect_timeout: float = Field(
        default=10.0, description="Redis connection timeout in seconds"
    )
    redis_socket_timeout: float = Field(
        default=5.0, description="Redis socket timeout in seconds"
    )
    redis_circuit_failure_threshold: int = Field(
        default=5, description="Failures before circuit opens"
    )
    redis_circuit_recovery_timeout: float = Field(
        default=30.0, description="Seconds before attempting recovery"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format: json or text")

    # API authentication
    auth_required: bool = Field(
        default=False, description="Require a Bearer API token on /api routes"
    )
    api_token: str | None = Field(
        default=None, description="Shared Bearer token for API clients and workers"
    )

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_requests: int = Field(
        default=100, description="Requests allowed per window per client IP"
    )
    rate_limit_window_seconds: int = Field(
        default=60, description="Rate limit window length in seconds"
    )

    # Claude/Anthropic LLM
    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key for Claude models",
    )
    claude_model: str = Field(
        default="claude-3-5-sonnet-20240620",
        description="Claude model used for page generation",
    )
    claude_timeout: float = Field(
        default=60.0, description="Claude API request timeout in seconds"
    )
    claude_max_retries: int = Field(
        default=3, description="Maximum retry attempts for Claude API requests"
    )
    claude_retry_delay: float = Field(
        default=1.0, description="Base delay between retries in seconds"
    )
    claude_max_tokens: int = Field(
        default=1200, description="Maximum tokens in Claude response"
    )
    claude_temperature: float = Field(
        default=0.3, description="Sampling temperature for page generation"
    )
    claude_circuit_failure_threshold: int = Field(
        default=5, description="Failures before circuit opens"
    )
    claude_circuit_recovery_timeout: float = Field(
        default=60.0, description="Seconds before attempting recovery"
    )
    claude_input_cost_per_1k: float = Field(
        default=0.003, description="USD per 1k input tokens"
    )
    claude_output_cost_per_1k: float = Field(
        default=0.015, description="USD per 1k output tokens"
    )

    # Ollama (local LLM)
    ollama_base_url: str = Field(
        default="http://localhost:11434", description="Ollama server base URL"
    )
    ollama_model: str = Field(default="llama3.1:8b", description="Ollama model name")
    ollama_timeout: float = Field(
        default=120.0, description="Ollama request timeout in seconds"
    )

    # Generation
    llm_provider: str = Field(
        default="claude", description="LLM provider for page generation: claude or ollama"
    )
    min_questionnaire_completeness: int = Field(
        default=40,
        description="Minimum questionnaire completeness score required to create a job",
    )

    # Webhooks
    webhook_timeout: float = Field(
        default=5.0, description="Webhook request timeout in seconds"
    )
    webhook_max_retries: int = Field(
        default=1, description="Attempts per webhook delivery (1 = no retry)"
    )
    webhook_retry_delay: float = Field(
        default=1.0, description="Base delay between webhook retries in seconds"
    )
    webhook_cache_ttl_seconds: int = Field(
        default=30, description="How long the active webhook list is cached"
    )
    webhook_circuit_failure_threshold: int = Field(
        default=5, description="Failures before circuit opens"
    )
    webhook_circuit_recovery_timeout: float = Field(
        default=60.0, description="Seconds before attempting recovery"
    )

    # AWS / SQS
    job_dispatch_mode: str = Field(
        default="poll",
        description="How queued pages reach workers: poll (HTTP claim) or sqs",
    )
    sqs_queue_url: str | None = Field(default=None, description="SQS page queue URL")
    aws_region: str = Field(default="us-east-1")
    aws_endpoint_url: str | None = Field(
        default=None, description="Custom AWS endpoint (LocalStack)"
    )
    aws_access_key_id: str | None = Field(default=None)
    aws_secret_access_key: str | None = Field(default=None)
    sqs_timeout: float = Field(default=10.0, description="SQS call timeout in seconds")
    sqs_max_retries: int = Field(default=3, description="Maximum SQS call attempts")
    sqs_retry_delay: float = Field(default=1.0, description="Base SQS retry delay")
    sqs_wait_time_seconds: int = Field(
        default=20, description="Long-poll wait time for the queue consumer"
    )
    sqs_circuit_failure_threshold: int = Field(default=5)
    sqs_circuit_recovery_timeout: float = Field(default=60.0)

    # Scheduler
    scheduler_enabled: bool = Field(default=True)
    scheduler_misfire_grace_time: int = Field(
        default=60, description="Seconds a missed run may still fire"
    )
    stale_claim_check_interval_seconds: int = Field(
        default=60, description="How often the stale-claim sweep runs"
    )
    stale_claim_timeout_minutes: int = Field(
        default=5, description="Processing pages older than this are re-queued"
    )

    # Polling worker
    worker_api_url: str = Field(
        default="http://localhost:8000", description="API base URL used by workers"
    )
    worker_poll_interval_seconds: float = Field(
        default=1.0, description="Initial delay when no pages are available"
    )
    worker_max_backoff_seconds: float = Field(
        default=30.0, description="Maximum delay between empty claims"
    )
    worker_request_timeout: float = Field(
        default=30.0, description="Worker HTTP request timeout in seconds"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
