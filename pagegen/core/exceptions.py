"""Domain exceptions rendered as structured API errors.

Every error carries an HTTP status and a machine-readable code. The
application installs one handler that turns them into
{"error": str, "code": str, "request_id": str} responses.
"""

from fastapi import status


class PagegenError(Exception):
    """Base exception for pagegen domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(PagegenError):
    """Raised when a requested entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(PagegenError):
    """Raised when input fails a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class InsufficientDataError(PagegenError):
    """Raised when a job cannot be created from the business's data."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INSUFFICIENT_DATA"


class ConflictError(PagegenError):
    """Raised when a request conflicts with current state."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class AuthenticationError(PagegenError):
    """Raised when the API token is missing or wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"


class ConfigurationError(PagegenError):
    """Raised when the server is missing required configuration."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "CONFIGURATION_ERROR"


class RateLimitError(PagegenError):
    """Raised when a client exceeds the request rate limit."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, retry_after: int) -> None:
        super().__init__("Too many requests. Please try again later.")
        self.retry_after = retry_after
