"""Shared helpers for v1 endpoints."""

from fastapi import Request


def get_request_id(request: Request) -> str:
    """Get request_id from request state."""
    return getattr(request.state, "request_id", "unknown")
