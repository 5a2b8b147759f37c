"""Utility modules for the application."""

from pagegen.utils.slug import build_url_path, to_city_state_slug, to_slug

__all__ = [
    "build_url_path",
    "to_city_state_slug",
    "to_slug",
]
