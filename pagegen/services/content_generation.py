"""Page content generation.

Renders the page's prompt, calls the configured LLM (Claude or a local
Ollama server) and parses the JSON page document out of the response:

    {"title", "meta_description", "h1", "body", "sections": [...], "cta"}

Responses that are not valid JSON are kept rather than discarded: the raw
text becomes the body of a fallback document.

Shared by the polling worker and the queue consumer.
"""

import json
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from pagegen.core.config import get_settings
from pagegen.core.logging import get_logger
from pagegen.integrations.claude import ClaudeClient, CompletionResult
from pagegen.integrations.ollama import OllamaClient
from pagegen.services.template import (
    build_page_variables,
    default_template,
    render_template,
)

logger = get_logger(__name__)

DEFAULT_SECTION_COUNT = 3
DEFAULT_CTA = {"text": "Contact Us", "url": "/contact"}
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


class LLMClient(Protocol):
    """What the generator needs from an LLM client."""

    @property
    def available(self) -> bool: ...

    @property
    def model(self) -> str: ...

    async def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> CompletionResult: ...


class GenerationError(Exception):
    """Raised when a page cannot be generated."""

    def __init__(self, message: str, page_id: str | None = None) -> None:
        super().__init__(message)
        self.page_id = page_id


@dataclass
class GenerationContext:
    """Everything needed to generate one page."""

    page: Mapping[str, Any]
    business: Mapping[str, Any]
    page_type: str
    questionnaire: Mapping[str, Any] | None = None
    template: Mapping[str, Any] | None = None

    @property
    def page_id(self) -> str | None:
        value = self.page.get("id")
        return str(value) if value is not None else None


@dataclass
class GeneratedPage:
    """Generated page document plus generation metrics."""

    content: dict[str, Any]
    section_count: int
    word_count: int
    model_name: str
    prompt_version: int | None = None
    generation_duration_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    raw_text: str = field(default="", repr=False)


def create_llm_client(provider: str | None = None) -> LLMClient:
    """Build the client for the configured provider (claude or ollama)."""
    settings = get_settings()
    provider = (provider or settings.llm_provider).lower()
    if provider == "ollama":
        return OllamaClient()
    if provider == "claude":
        return ClaudeClient()
    raise ValueError(f"Unknown LLM provider: {provider}")


def count_words(text: str) -> int:
    return len(text.split())


def _fallback_content(raw: str) -> dict[str, Any]:
    """Wrap unparseable LLM output as a page document."""
    lines = [line.strip() for line in raw.splitlines() if line.strip()]
    first_line = lines[0] if lines else ""
    return {
        "title": first_line[:60] or "Local Services",
        "meta_description": first_line[:155],
        "h1": first_line or "Welcome",
        "body": raw.strip(),
        "sections": [],
        "cta": dict(DEFAULT_CTA),
    }


def parse_generated_content(text: str) -> tuple[dict[str, Any], bool]:
    """Extract the page document from an LLM response.

    Strips markdown fences and surrounding prose. Returns (content, parsed);
    parsed is False when the raw text was wrapped as the body instead.
    """
    cleaned = text.strip()

    if cleaned.startswith("```"):
        lines = cleaned.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines).strip()

    if not cleaned.startswith("{"):
        match = JSON_OBJECT_PATTERN.search(cleaned)
        if match:
            cleaned = match.group(0)

    try:
        parsed = json.loads(cleaned)
    except (json.JSONDecodeError, ValueError):
        parsed = None

    if not isinstance(parsed, dict) or not parsed.get("body"):
        logger.warning(
            "Generated content is not a JSON page document, wrapping raw text",
            extra={"snippet": text[:300], "length": len(text)},
        )
        return _fallback_content(text), False

    sections = parsed.get("sections")
    content = {
        "title": str(parsed.get("title") or ""),
        "meta_description": str(parsed.get("meta_description") or parsed.get("title") or ""),
        "h1": str(parsed.get("h1") or parsed.get("title") or ""),
        "body": str(parsed["body"]),
        "sections": sections if isinstance(sections, list) else [],
        "cta": parsed.get("cta") or dict(DEFAULT_CTA),
    }
    return content, True


def content_word_count(content: Mapping[str, Any]) -> int:
    """Words in the body plus every section's content."""
    total = count_words(str(content.get("body") or ""))
    for section in content.get("sections") or []:
        if isinstance(section, Mapping):
            total += count_words(str(section.get("content") or ""))
    return total


class ContentGenerator:
    """Generates one page's content with an LLM client."""

    def __init__(self, client: LLMClient | None = None) -> None:
        self._client = client or create_llm_client()

    @property
    def client(self) -> LLMClient:
        return self._client

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()

    def build_prompt(self, context: GenerationContext) -> tuple[str, int | None]:
        """Render the page's prompt. Returns (prompt, template version or None)."""
        variables = build_page_variables(
            context.business, context.questionnaire, context.page, context.page_type
        )
        if context.template and context.template.get("template"):
            template_text = str(context.template["template"])
            version = context.template.get("version")
            word_target = context.template.get("word_count_target")
            if word_target:
                variables["word_count_target"] = str(word_target)
            return render_template(template_text, variables), version

        logger.debug(
            "No active template, using default prompt",
            extra={"page_id": context.page_id, "page_type": context.page_type},
        )
        return render_template(default_template(context.page_type), variables), None

    async def generate(self, context: GenerationContext) -> GeneratedPage:
        """Generate a page.

        Raises:
            GenerationError: LLM unavailable or the completion failed
        """
        if not self._client.available:
            raise GenerationError("LLM client is not configured", context.page_id)

        prompt, prompt_version = self.build_prompt(context)

        start_time = time.monotonic()
        result = await self._client.complete(prompt)
        duration_ms = int((time.monotonic() - start_time) * 1000)

        if not result.success or result.text is None:
            raise GenerationError(
                result.error or "LLM returned no content", context.page_id
            )

        content, _ = parse_generated_content(result.text)
        sections = content.get("sections") or []

        return GeneratedPage(
            content=content,
            section_count=len(sections) or DEFAULT_SECTION_COUNT,
            word_count=content_word_count(content),
            model_name=self._client.model,
            prompt_version=prompt_version,
            generation_duration_ms=duration_ms,
            input_tokens=result.input_tokens or 0,
            output_tokens=result.output_tokens or 0,
            raw_text=result.text,
        )
