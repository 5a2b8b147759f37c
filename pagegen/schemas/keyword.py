"""Pydantic schemas for keywords and service areas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pagegen.models.keyword import KeywordLanguage, SearchIntent

VALID_LANGUAGES = frozenset(lang.value for lang in KeywordLanguage)
VALID_SEARCH_INTENTS = frozenset(intent.value for intent in SearchIntent)


def _validate_language(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.lower()
    if v not in VALID_LANGUAGES:
        raise ValueError(
            f"Invalid language '{v}'. Must be one of: {', '.join(sorted(VALID_LANGUAGES))}"
        )
    return v


def _validate_search_intent(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.lower()
    if v not in VALID_SEARCH_INTENTS:
        raise ValueError(
            f"Invalid search_intent '{v}'. "
            f"Must be one of: {', '.join(sorted(VALID_SEARCH_INTENTS))}"
        )
    return v


# -----------------------------------------------------------------------------
# Keyword Schemas
# -----------------------------------------------------------------------------


class KeywordCreate(BaseModel):
    """Schema for creating a keyword. The slug is derived from the text."""

    keyword: str = Field(..., min_length=1, max_length=255, description="Keyword text")
    language: str = Field(default="en", description="Keyword language (en, es)")
    search_intent: str | None = Field(default=None, description="Search intent")
    priority: int = Field(default=5, ge=1, le=10, description="Priority (1-10)")
    is_active: bool = Field(default=True, description="Include in page generation")

    @field_validator("keyword")
    @classmethod
    def validate_keyword(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Keyword cannot be empty or whitespace only")
        return v

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        return _validate_language(v) or "en"

    @field_validator("search_intent")
    @classmethod
    def validate_search_intent(cls, v: str | None) -> str | None:
        return _validate_search_intent(v)


class KeywordUpdate(BaseModel):
    """Schema for updating a keyword."""

    keyword: str | None = Field(default=None, min_length=1, max_length=255)
    language: str | None = None
    search_intent: str | None = None
    priority: int | None = Field(default=None, ge=1, le=10)
    is_active: bool | None = None

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str | None) -> str | None:
        return _validate_language(v)

    @field_validator("search_intent")
    @classmethod
    def validate_search_intent(cls, v: str | None) -> str | None:
        return _validate_search_intent(v)


class KeywordBulkCreate(BaseModel):
    """Schema for creating many keywords in one request."""

    keywords: list[KeywordCreate] = Field(..., min_length=1, max_length=500)


class KeywordResponse(BaseModel):
    """Schema for keyword response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    keyword: str
    slug: str
    language: str
    search_intent: str | None
    priority: int
    is_active: bool
    created_at: datetime


class KeywordListResponse(BaseModel):
    items: list[KeywordResponse]
    total: int


class KeywordBulkResponse(BaseModel):
    """Result of a bulk keyword create. Duplicates are skipped, not failed."""

    created: list[KeywordResponse]
    skipped: list[str] = Field(
        default_factory=list, description="Keywords skipped as duplicates"
    )


# -----------------------------------------------------------------------------
# Service Area Schemas
# -----------------------------------------------------------------------------


class ServiceAreaCreate(BaseModel):
    """Schema for creating a service area. The slug is derived from city and state."""

    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=50)
    county: str | None = Field(default=None, max_length=100)
    priority: int = Field(default=0, ge=0)
    is_active: bool = True

    @field_validator("city", "state")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be empty or whitespace only")
        return v


class ServiceAreaUpdate(BaseModel):
    """Schema for updating a service area."""

    city: str | None = Field(default=None, min_length=1, max_length=100)
    state: str | None = Field(default=None, min_length=1, max_length=50)
    county: str | None = Field(default=None, max_length=100)
    priority: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class ServiceAreaBulkCreate(BaseModel):
    service_areas: list[ServiceAreaCreate] = Field(..., min_length=1, max_length=500)


class ServiceAreaResponse(BaseModel):
    """Schema for service area response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    city: str
    state: str
    county: str | None
    slug: str
    priority: int
    is_active: bool
    location_id: str | None
    created_at: datetime


class ServiceAreaListResponse(BaseModel):
    items: list[ServiceAreaResponse]
    total: int


class ServiceAreaBulkResponse(BaseModel):
    created: list[ServiceAreaResponse]
    skipped: list[str] = Field(
        default_factory=list, description="Slugs skipped as duplicates"
    )
