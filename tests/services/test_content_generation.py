"""Tests for LLM content generation and response parsing."""

import json

import pytest

from pagegen.integrations.claude import ClaudeClient, CompletionResult
from pagegen.integrations.ollama import OllamaClient
from pagegen.services.content_generation import (
    DEFAULT_CTA,
    ContentGenerator,
    GenerationContext,
    GenerationError,
    content_word_count,
    create_llm_client,
    parse_generated_content,
)

from tests.conftest import FULL_QUESTIONNAIRE

PAGE_DOCUMENT = {
    "title": "Emergency Plumber in Sterling, VA",
    "meta_description": "24/7 plumbing in Sterling",
    "h1": "Emergency Plumber in Sterling",
    "body": "Burst pipe at midnight? We answer.",
    "sections": [
        {"heading": "Fast response", "content": "Trucks across Loudoun County."},
        {"heading": "Fair pricing", "content": "Upfront quotes."},
    ],
    "cta": {"text": "Call now", "url": "/call"},
}


class FakeLLMClient:
    """Records prompts and returns a canned completion."""

    def __init__(self, result: CompletionResult, available: bool = True) -> None:
        self.result = result
        self.prompts: list[str] = []
        self._available = available

    @property
    def available(self) -> bool:
        return self._available

    @property
    def model(self) -> str:
        return "fake-model"

    async def complete(self, user_prompt, system_prompt=None, max_tokens=None, temperature=None):
        self.prompts.append(user_prompt)
        return self.result


def make_context(template: dict | None = None) -> GenerationContext:
    return GenerationContext(
        page={
            "id": "page-1",
            "keyword_text": "Emergency Plumber",
            "keyword_language": "en",
            "city": "Sterling",
            "state": "VA",
            "url_path": "/emergency-plumber/sterling-va",
        },
        business={"name": "Acme Plumbing", "industry": "Plumbing"},
        page_type="keyword-service-area",
        questionnaire=FULL_QUESTIONNAIRE,
        template=template,
    )


class TestParseGeneratedContent:
    def test_plain_json(self) -> None:
        content, parsed = parse_generated_content(json.dumps(PAGE_DOCUMENT))

        assert parsed is True
        assert content == PAGE_DOCUMENT

    def test_markdown_fences_are_stripped(self) -> None:
        text = "```json\n" + json.dumps(PAGE_DOCUMENT) + "\n```"

        content, parsed = parse_generated_content(text)

        assert parsed is True
        assert content["title"] == PAGE_DOCUMENT["title"]

    def test_json_inside_prose(self) -> None:
        text = "Here is your page:\n" + json.dumps(PAGE_DOCUMENT) + "\nEnjoy!"

        content, parsed = parse_generated_content(text)

        assert parsed is True
        assert content["h1"] == PAGE_DOCUMENT["h1"]

    def test_missing_optional_fields_get_defaults(self) -> None:
        content, parsed = parse_generated_content(
            json.dumps({"title": "Drain Cleaning", "body": "We clear drains."})
        )

        assert parsed is True
        assert content["meta_description"] == "Drain Cleaning"
        assert content["h1"] == "Drain Cleaning"
        assert content["sections"] == []
        assert content["cta"] == DEFAULT_CTA

    def test_non_json_falls_back_to_raw_body(self) -> None:
        text = "Emergency plumbing you can trust in Sterling and beyond, day or night\nMore text."

        content, parsed = parse_generated_content(text)

        assert parsed is False
        assert content["title"] == text.splitlines()[0][:60]
        assert content["body"] == text
        assert content["sections"] == []
        assert content["cta"] == DEFAULT_CTA

    def test_json_without_body_falls_back(self) -> None:
        content, parsed = parse_generated_content('{"title": "No body"}')

        assert parsed is False
        assert content["body"] == '{"title": "No body"}'


class TestContentWordCount:
    def test_counts_body_and_sections(self) -> None:
        assert content_word_count(PAGE_DOCUMENT) == 6 + 4 + 2

    def test_empty_document(self) -> None:
        assert content_word_count({}) == 0


class TestCreateLLMClient:
    def test_claude_provider(self) -> None:
        assert isinstance(create_llm_client("claude"), ClaudeClient)

    def test_ollama_provider(self) -> None:
        assert isinstance(create_llm_client("OLLAMA"), OllamaClient)

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError):
            create_llm_client("gpt")


class TestContentGenerator:
    async def test_generate_returns_document_and_metrics(self) -> None:
        client = FakeLLMClient(
            CompletionResult(
                success=True,
                text=json.dumps(PAGE_DOCUMENT),
                input_tokens=1200,
                output_tokens=800,
            )
        )

        generated = await ContentGenerator(client).generate(make_context())

        assert generated.content == PAGE_DOCUMENT
        assert generated.section_count == 2
        assert generated.word_count == 12
        assert generated.model_name == "fake-model"
        assert generated.prompt_version is None
        assert generated.input_tokens == 1200
        assert generated.output_tokens == 800
        assert "Emergency Plumber" in client.prompts[0]

    async def test_document_without_sections_counts_default(self) -> None:
        client = FakeLLMClient(CompletionResult(success=True, text="Plain text page"))

        generated = await ContentGenerator(client).generate(make_context())

        assert generated.section_count == 3
        assert generated.content["body"] == "Plain text page"

    async def test_active_template_is_rendered(self) -> None:
        client = FakeLLMClient(CompletionResult(success=True, text=json.dumps(PAGE_DOCUMENT)))
        template = {
            "template": "Write {{word_count_target}} words on {{keyword}} in {{city}}",
            "version": 4,
            "word_count_target": 900,
        }

        generated = await ContentGenerator(client).generate(make_context(template))

        assert client.prompts == ["Write 900 words on Emergency Plumber in Sterling"]
        assert generated.prompt_version == 4

    async def test_failed_completion_raises(self) -> None:
        client = FakeLLMClient(CompletionResult(success=False, error="Server error (503)"))

        with pytest.raises(GenerationError) as exc_info:
            await ContentGenerator(client).generate(make_context())

        assert str(exc_info.value) == "Server error (503)"
        assert exc_info.value.page_id == "page-1"

    async def test_unavailable_client_raises(self) -> None:
        client = FakeLLMClient(CompletionResult(success=True, text="x"), available=False)

        with pytest.raises(GenerationError):
            await ContentGenerator(client).generate(make_context())

        assert client.prompts == []
