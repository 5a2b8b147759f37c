"""Tests for prompt template rendering and page variables."""

from pagegen.services.template import (
    DEFAULT_BLOG_TEMPLATE,
    DEFAULT_LANDING_TEMPLATE,
    build_page_variables,
    default_template,
    render_template,
)

from tests.conftest import FULL_QUESTIONNAIRE

BUSINESS = {"name": "Acme Plumbing", "industry": "Plumbing", "phone": "555-0100"}
PAGE = {
    "keyword_text": "Emergency Plumber",
    "keyword_slug": "emergency-plumber",
    "keyword_language": "en",
    "city": "Sterling",
    "state": "VA",
    "url_path": "/emergency-plumber/sterling-va",
}


class TestRenderTemplate:
    def test_replaces_tokens_with_and_without_spaces(self) -> None:
        result = render_template("{{a}} and {{ b }}", {"a": "one", "b": 2})

        assert result == "one and 2"

    def test_missing_and_none_values_render_empty(self) -> None:
        result = render_template("[{{missing}}][{{ none }}]", {"none": None})

        assert result == "[][]"

    def test_dotted_names_are_flat_keys(self) -> None:
        result = render_template("{{ brand.voice }}", {"brand.voice": "Warm"})

        assert result == "Warm"

    def test_does_not_recurse_into_values(self) -> None:
        result = render_template("{{a}}", {"a": "{{b}}", "b": "nope"})

        assert result == "{{b}}"

    def test_text_without_tokens_is_unchanged(self) -> None:
        assert render_template("plain { text }", {}) == "plain { text }"


class TestBuildPageVariables:
    def test_core_variables(self) -> None:
        variables = build_page_variables(
            BUSINESS, FULL_QUESTIONNAIRE, PAGE, "keyword-service-area"
        )

        assert variables["business_name"] == "Acme Plumbing"
        assert variables["industry"] == "Plumbing"
        assert variables["keyword"] == "Emergency Plumber"
        assert variables["city"] == "Sterling"
        assert variables["state"] == "VA"
        assert variables["url_path"] == "/emergency-plumber/sterling-va"
        assert variables["content_language"] == "English"
        assert variables["primary_keyword_es"] == ""

    def test_questionnaire_values(self) -> None:
        variables = build_page_variables(
            BUSINESS, FULL_QUESTIONNAIRE, PAGE, "keyword-service-area"
        )

        assert variables["primary_service"] == "Drain Cleaning"
        assert variables["services_list"] == "Drain Cleaning, Water Heater Repair"
        assert variables["tagline"] == "Fast, friendly plumbing"
        assert variables["voice_tone"] == "Friendly"
        assert variables["cta_text"] == "Call today"
        assert variables["target_audience"] == "Homeowners in Loudoun County"

    def test_service_page_uses_keyword_as_primary_service(self) -> None:
        page = {**PAGE, "keyword_text": "Water Heater Repair"}

        variables = build_page_variables(
            BUSINESS, FULL_QUESTIONNAIRE, page, "service-service-area"
        )

        assert variables["primary_service"] == "Water Heater Repair"

    def test_spanish_keyword(self) -> None:
        page = {**PAGE, "keyword_text": "Plomero", "keyword_language": "es"}

        variables = build_page_variables(BUSINESS, None, page, "keyword-service-area")

        assert variables["content_language"] == "Spanish"
        assert variables["primary_keyword_es"] == "Plomero"

    def test_defaults_without_business_details(self) -> None:
        variables = build_page_variables({}, None, PAGE, "keyword-location")

        assert variables["business_name"] == "Local Business"
        assert variables["industry"] == "LocalBusiness"
        assert variables["phone"] == ""
        assert variables["services_list"] == ""
        assert variables["primary_service"] == "Emergency Plumber"


class TestDefaultTemplate:
    def test_blog_types_get_blog_template(self) -> None:
        assert default_template("blog-location") == DEFAULT_BLOG_TEMPLATE

    def test_other_types_get_landing_template(self) -> None:
        assert default_template("keyword-service-area") == DEFAULT_LANDING_TEMPLATE

    def test_default_template_renders_fully(self) -> None:
        variables = build_page_variables(
            BUSINESS, FULL_QUESTIONNAIRE, PAGE, "keyword-service-area"
        )

        prompt = render_template(DEFAULT_LANDING_TEMPLATE, variables)

        assert "{{" not in prompt
        assert '"Emergency Plumber" targeting Sterling, VA in English' in prompt
