"""API layer - FastAPI routers."""
