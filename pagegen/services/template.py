"""Prompt template rendering.

Templates use {{ name }} tokens. Dotted names ({{ brand.voice }}) are flat
keys in the variable map, not lookups. Missing or None values render as an
empty string. There is no escaping, recursion or control flow.

Variables are built from plain dicts so the polling worker (which receives
JSON from the API) and the queue consumer (which reads rows directly) share
one implementation.
"""

import re
from collections.abc import Mapping
from typing import Any

from pagegen.services.job_fanout import (
    is_blog_page_type,
    primary_service_name,
    services_from_questionnaire,
)

TOKEN_PATTERN = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")

DEFAULT_BUSINESS_NAME = "Local Business"
DEFAULT_INDUSTRY = "LocalBusiness"

_JSON_INSTRUCTIONS = (
    "Return JSON with fields: title, meta_description, h1, body, "
    "sections (array with heading/content), cta."
)

DEFAULT_LANDING_TEMPLATE = (
    "You are an SEO content writer for {{business_name}}, a {{industry}} business.\n\n"
    'Write a local SEO landing page for "{{keyword}}" targeting {{city}}, {{state}} '
    "in {{content_language}}.\n\n" + _JSON_INSTRUCTIONS
)

DEFAULT_BLOG_TEMPLATE = (
    "You are an SEO content writer for {{business_name}}, a {{industry}} business.\n\n"
    'Write a local SEO blog post about "{{keyword}}" for {{city}}, {{state}} '
    "in {{content_language}}.\n\n" + _JSON_INSTRUCTIONS
)


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    """Replace every {{ token }} with its value, or "" when absent or None."""

    def _replace(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return TOKEN_PATTERN.sub(_replace, template)


def default_template(page_type: str) -> str:
    return DEFAULT_BLOG_TEMPLATE if is_blog_page_type(page_type) else DEFAULT_LANDING_TEMPLATE


def build_page_variables(
    business: Mapping[str, Any],
    questionnaire: Mapping[str, Any] | None,
    page: Mapping[str, Any],
    page_type: str,
) -> dict[str, str]:
    """Variables available to prompt templates for one page.

    Args:
        business: Business fields (name, industry, phone, ...)
        questionnaire: Questionnaire data document, if any
        page: Job page fields (keyword_text, city, state, keyword_language, ...)
        page_type: Canonical page type of the job
    """
    keyword_language = str(page.get("keyword_language") or "en")
    keyword = str(page.get("keyword_text") or page.get("keyword_slug") or "")

    data = dict(questionnaire or {})
    if page_type.startswith("service-"):
        primary_service = keyword
    else:
        primary_service = primary_service_name(data) or keyword

    return {
        "business_name": str(business.get("name") or DEFAULT_BUSINESS_NAME),
        "industry": str(business.get("industry") or DEFAULT_INDUSTRY),
        "phone": str(business.get("phone") or ""),
        "email": str(business.get("email") or ""),
        "website": str(business.get("website") or ""),
        "city": str(page.get("city") or ""),
        "state": str(page.get("state") or ""),
        "url_path": str(page.get("url_path") or ""),
        "keyword": keyword,
        "page_type": page_type,
        "primary_service": primary_service,
        "primary_keyword": keyword,
        "primary_keyword_es": keyword if keyword_language == "es" else "",
        "keyword_language": keyword_language,
        "content_language": "Spanish" if keyword_language == "es" else "English",
        "services_list": ", ".join(s.name for s in services_from_questionnaire(data)),
        "tagline": _section_value(data, "business", "tagline"),
        "target_audience": _section_value(data, "audience", "targetDescription"),
        "voice_tone": _section_value(data, "brand", "voiceTone"),
        "cta_text": _section_value(data, "brand", "callToAction"),
    }


def _section_value(data: Mapping[str, Any], section: str, key: str) -> str:
    block = data.get(section)
    if not isinstance(block, Mapping):
        return ""
    value = block.get(key)
    return "" if value is None else str(value)
