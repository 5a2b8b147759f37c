"""pagegen API application.

create_app() wires the versioned router (/api/v1), request logging, CORS,
structured error responses and the health probes (/health, /health/db,
/health/redis, /health/scheduler). The lifespan opens the database, the
optional Redis connection and the stale-claim sweep, and closes them again
on SIGTERM. The port comes from the PORT environment variable.

Every error response has the body {"error", "code", "request_id"}; the
request id is also returned in the X-Request-ID header. 4xx responses are
logged at WARNING and 5xx at ERROR.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from pagegen.api.v1 import router as api_v1_router
from pagegen.api.v1.deps import get_request_id
from pagegen.core.config import Settings, get_settings
from pagegen.core.database import db_manager
from pagegen.core.exceptions import PagegenError, RateLimitError
from pagegen.core.logging import get_logger, setup_logging
from pagegen.core.redis import redis_manager
from pagegen.core.scheduler import scheduler_manager
from pagegen.integrations.webhook import close_webhook_client
from pagegen.services.job_pages import release_stale_claims_job

setup_logging()
logger = get_logger(__name__)

STALE_CLAIMS_JOB_ID = "release_stale_claims"

REDACTED_KEYS = frozenset({"password", "token", "secret", "api_key", "authorization"})
BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def sanitize_body(body: Any) -> Any:
    """Mask credential-like keys, recursing into nested objects."""
    if not isinstance(body, dict):
        return body
    return {
        key: "****" if key.lower() in REDACTED_KEYS else sanitize_body(value)
        for key, value in body.items()
    }


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns a request id, logs the request and its outcome with timing."""

    async def dispatch(self, request: Request, call_next: Any) -> Any:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }
        started = time.monotonic()

        logger.info(
            "Request started",
            extra={**context, "query_params": str(request.query_params) or None},
        )
        if request.method not in BODYLESS_METHODS and logger.isEnabledFor(logging.DEBUG):
            await self._log_body(request, request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        outcome = {
            **context,
            "status_code": response.status_code,
            "duration_ms": round((time.monotonic() - started) * 1000, 2),
        }
        if response.status_code >= 500:
            logger.error("Request failed", extra=outcome)
        elif response.status_code >= 400:
            logger.warning("Request rejected", extra=outcome)
        else:
            logger.info("Request completed", extra=outcome)
        return response

    @staticmethod
    async def _log_body(request: Request, request_id: str) -> None:
        raw = await request.body()
        if not raw:
            return
        try:
            body = sanitize_body(json.loads(raw))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug(
                "Request body (non-JSON)",
                extra={"request_id": request_id, "body_length": len(raw)},
            )
            return
        logger.debug("Request body", extra={"request_id": request_id, "body": body})


def _schedule_stale_claim_sweep(settings: Settings) -> None:
    if not scheduler_manager.init_scheduler():
        return
    scheduler_manager.add_interval_job(
        release_stale_claims_job,
        job_id=STALE_CLAIMS_JOB_ID,
        seconds=settings.stale_claim_check_interval_seconds,
        name="Release stale page claims",
    )
    if not scheduler_manager.start():
        logger.warning("Scheduler did not start, stale claims will not be swept")


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    settings = get_settings()
    logger.info(
        "Starting pagegen API",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "dispatch_mode": settings.job_dispatch_mode,
        },
    )

    db_manager.init_db()
    if settings.db_create_all:
        await db_manager.create_all()
        logger.info("Database tables created")

    if not await redis_manager.init_redis():
        logger.info("Running without Redis: no rate limiting or webhook cache")

    _schedule_stale_claim_sweep(settings)

    yield

    logger.info("Shutting down pagegen API")
    scheduler_manager.stop(wait=True)
    await close_webhook_client()
    await redis_manager.close()
    await db_manager.close()
    logger.info("Shutdown complete")


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    code: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "code": code, "request_id": get_request_id(request)},
        headers=headers,
    )


async def handle_pagegen_error(request: Request, exc: PagegenError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        exc.message,
        extra={
            "request_id": get_request_id(request),
            "code": exc.code,
            "status_code": exc.status_code,
            "path": request.url.path,
        },
    )
    headers = (
        {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitError) else None
    )
    return _error_response(request, exc.status_code, exc.message, exc.code, headers)


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Flatten pydantic errors into "loc.path: message; ..."."""
    problems = [(".".join(str(part) for part in e["loc"]), e["msg"]) for e in exc.errors()]
    logger.warning(
        "Request validation failed",
        extra={
            "request_id": get_request_id(request),
            "errors": [{"loc": loc, "msg": msg} for loc, msg in problems],
        },
    )
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "; ".join(f"{loc}: {msg}" for loc, msg in problems),
        "VALIDATION_ERROR",
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        extra={
            "request_id": get_request_id(request),
            "error_type": type(exc).__name__,
            "error_message": str(exc),
        },
        exc_info=True,
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An internal error occurred. Please try again later.",
        "INTERNAL_ERROR",
    )


def _add_health_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/db", tags=["Health"])
    async def database_health() -> dict[str, str | bool]:
        healthy = await db_manager.check_connection()
        return {"status": "ok" if healthy else "error", "database": healthy}

    @app.get("/health/redis", tags=["Health"])
    async def redis_health() -> dict[str, str | bool]:
        healthy = await redis_manager.check_health()
        breaker = redis_manager.circuit_breaker
        return {
            "status": "ok" if healthy else "unavailable",
            "redis": healthy,
            "circuit_breaker": breaker.state.value if breaker else "not_initialized",
        }

    @app.get("/health/scheduler", tags=["Health"])
    async def scheduler_health() -> dict[str, Any]:
        return scheduler_manager.check_health()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(PagegenError, handle_pagegen_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)

    _add_health_routes(app)
    app.include_router(api_v1_router, prefix="/api/v1")
    return app


app = create_app()


def main() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "pagegen.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
