"""API token authentication dependency for FastAPI.

Every /api/v1 route requires "Authorization: Bearer <API_TOKEN>".
When AUTH_REQUIRED=false the check is skipped (local development).
Health endpoints live outside the versioned router and are never checked.
"""

import hmac

from fastapi import Depends, Request

from pagegen.core.config import Settings, get_settings
from pagegen.core.exceptions import AuthenticationError, ConfigurationError
from pagegen.core.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


async def require_api_token(
    request: Request, settings: Settings = Depends(get_settings)
) -> None:
    """Validate the Bearer token against the configured API token."""
    if not settings.auth_required:
        return

    if not settings.api_token:
        logger.error("API token required but API_TOKEN is not configured")
        raise ConfigurationError("Server authentication is not configured")

    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise AuthenticationError("Missing authorization header")

    if not auth_header.startswith(BEARER_PREFIX):
        raise AuthenticationError(
            "Invalid authorization format. Expected: Bearer <token>"
        )

    token = auth_header[len(BEARER_PREFIX) :].strip()
    if not hmac.compare_digest(token.encode(), settings.api_token.encode()):
        logger.warning(
            "Invalid API token",
            extra={
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None,
            },
        )
        raise AuthenticationError("Invalid API token")
