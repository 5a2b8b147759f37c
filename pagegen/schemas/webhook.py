"""Pydantic schemas for webhook subscriptions."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Valid webhook events
VALID_WEBHOOK_EVENTS = frozenset({"job.completed", "job.failed"})


class WebhookCreate(BaseModel):
    """Schema for creating a webhook."""

    url: str = Field(..., min_length=1, max_length=2048, description="Target URL")
    events: list[str] = Field(
        default_factory=lambda: sorted(VALID_WEBHOOK_EVENTS),
        description="Subscribed events",
    )
    is_active: bool = True

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v

    @field_validator("events")
    @classmethod
    def validate_events(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one event is required")
        invalid = set(v) - VALID_WEBHOOK_EVENTS
        if invalid:
            raise ValueError(
                f"Invalid events: {', '.join(sorted(invalid))}. "
                f"Must be one of: {', '.join(sorted(VALID_WEBHOOK_EVENTS))}"
            )
        # Deduplicate while keeping order
        return list(dict.fromkeys(v))


class WebhookResponse(BaseModel):
    """Schema for webhook response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    url: str
    events: list[str] | None
    is_active: bool
    created_at: datetime


class WebhookListResponse(BaseModel):
    items: list[WebhookResponse]
    total: int
