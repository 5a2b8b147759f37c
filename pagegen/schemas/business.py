"""Pydantic schemas for businesses and their questionnaire."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BusinessBase(BaseModel):
    """Fields shared by business create and response schemas."""

    name: str = Field(..., min_length=1, max_length=255, description="Business name")
    industry: str = Field(
        ..., min_length=1, max_length=100, description="Industry label, e.g. 'plumbing'"
    )
    phone: str | None = Field(default=None, max_length=50, description="Phone number")
    email: str | None = Field(default=None, max_length=255, description="Contact email")
    website: str | None = Field(default=None, description="Website URL")
    address: str | None = Field(default=None, max_length=255, description="Street address")
    city: str | None = Field(default=None, max_length=100, description="City")
    state: str | None = Field(default=None, max_length=50, description="State")
    zip: str | None = Field(default=None, max_length=20, description="ZIP / postal code")
    country: str = Field(
        default="US", min_length=2, max_length=2, description="ISO 3166-1 alpha-2 code"
    )

    @field_validator("name", "industry")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be empty or whitespace only")
        return v

    @field_validator("country")
    @classmethod
    def normalize_country(cls, v: str) -> str:
        return v.upper()


class BusinessCreate(BusinessBase):
    """Schema for creating a business."""

    pass


class BusinessUpdate(BaseModel):
    """Schema for updating a business. Only provided fields are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    industry: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    website: str | None = None
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=50)
    zip: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, min_length=2, max_length=2)


class BusinessResponse(BusinessBase):
    """Schema for business response."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Business UUID")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class BusinessListResponse(BaseModel):
    """Paginated list of businesses."""

    items: list[BusinessResponse]
    total: int
    limit: int
    offset: int


class QuestionnaireUpdate(BaseModel):
    """Replaces the questionnaire document."""

    data: dict[str, Any] = Field(..., description="Questionnaire answers")


class QuestionnaireResponse(BaseModel):
    """Schema for questionnaire response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    data: dict[str, Any]
    completeness_score: int = Field(..., ge=0, le=100)
    updated_at: datetime
