"""URL slug helpers.

Slugs transliterate diacritics so that "San José" becomes "san-jose",
matching how people actually type searches.
"""

import re
import unicodedata

_NON_WORD = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATORS = re.compile(r"[\s_-]+")


def to_slug(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated URL slug."""
    value = text.lower().strip()
    value = unicodedata.normalize("NFD", value)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = _NON_WORD.sub("", value)
    value = _SEPARATORS.sub("-", value)
    return value.strip("-")


def to_city_state_slug(city: str, state: str) -> str:
    """Build the city-state slug used in page URLs, e.g. "sterling-va"."""
    return f"{to_slug(city)}-{state.lower()}"


def build_url_path(keyword_slug: str | None, area_slug: str) -> str:
    """Build a generated page's URL path."""
    if keyword_slug:
        return f"/{keyword_slug}/{area_slug}"
    return f"/{area_slug}"
