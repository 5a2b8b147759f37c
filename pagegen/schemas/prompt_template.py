"""Pydantic schemas for prompt templates."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PromptTemplateCreate(BaseModel):
    """Schema for creating a prompt template version."""

    page_type: str = Field(
        ..., min_length=1, max_length=50, description="Page type this template generates"
    )
    version: int = Field(..., ge=1, description="Template version (>= 1)")
    template: str = Field(..., min_length=1, description="Prompt text with {{variables}}")
    required_variables: list[str] = Field(default_factory=list)
    optional_variables: list[str] = Field(default_factory=list)
    word_count_target: int = Field(default=600, ge=1)
    is_active: bool = True

    @field_validator("template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Template content is required")
        return v


class PromptTemplateUpdate(BaseModel):
    """Schema for updating a prompt template."""

    template: str | None = Field(default=None, min_length=1)
    required_variables: list[str] | None = None
    optional_variables: list[str] | None = None
    word_count_target: int | None = Field(default=None, ge=1)
    is_active: bool | None = None

    @field_validator("template")
    @classmethod
    def validate_template(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Template content is required")
        return v


class PromptTemplateResponse(BaseModel):
    """Schema for prompt template response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    page_type: str
    version: int
    template: str
    required_variables: list[str]
    optional_variables: list[str]
    word_count_target: int
    is_active: bool
    created_at: datetime


class PromptTemplateListResponse(BaseModel):
    items: list[PromptTemplateResponse]
    total: int
