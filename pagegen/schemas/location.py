"""Pydantic schemas for store locations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Valid location statuses
VALID_LOCATION_STATUSES = frozenset({"active", "upcoming"})


def _validate_status(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.lower()
    if v not in VALID_LOCATION_STATUSES:
        raise ValueError(
            f"Invalid status '{v}'. "
            f"Must be one of: {', '.join(sorted(VALID_LOCATION_STATUSES))}"
        )
    return v


class LocationCreate(BaseModel):
    """Schema for creating a location."""

    name: str = Field(..., min_length=1, max_length=255, description="Store name")
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=50)
    display_name: str | None = Field(
        default=None,
        max_length=255,
        description="Defaults to '{business name} ({city})'",
    )
    address: str | None = Field(default=None, max_length=255)
    zip_code: str | None = Field(default=None, max_length=20)
    country: str = Field(default="US", min_length=2, max_length=2)
    full_address: str | None = Field(
        default=None, description="Assembled from the address parts when omitted"
    )
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    google_maps_url: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    status: str = Field(default="active", description="active or upcoming")
    is_headquarters: bool = False
    priority: int = Field(default=0, ge=0)

    @field_validator("name", "city", "state")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be empty or whitespace only")
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return _validate_status(v) or "active"

    @field_validator("country")
    @classmethod
    def normalize_country(cls, v: str) -> str:
        return v.upper()


class LocationUpdate(BaseModel):
    """Schema for updating a location. Only provided fields are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    city: str | None = Field(default=None, min_length=1, max_length=100)
    state: str | None = Field(default=None, min_length=1, max_length=50)
    display_name: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=255)
    zip_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, min_length=2, max_length=2)
    full_address: str | None = None
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    google_maps_url: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    status: str | None = None
    is_headquarters: bool | None = None
    priority: int | None = Field(default=None, ge=0)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str | None) -> str | None:
        return _validate_status(v)


class LocationResponse(BaseModel):
    """Schema for location response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    name: str
    display_name: str | None
    address: str | None
    city: str
    state: str
    zip_code: str | None
    country: str
    full_address: str | None
    phone: str | None
    email: str | None
    google_maps_url: str | None
    latitude: float | None
    longitude: float | None
    status: str
    is_headquarters: bool
    priority: int
    created_at: datetime
    updated_at: datetime


class LocationListResponse(BaseModel):
    items: list[LocationResponse]
    total: int


class LocationStatsResponse(BaseModel):
    """Aggregate location counts for a business."""

    total: int
    active: int
    upcoming: int
    by_state: dict[str, int]
    by_country: dict[str, int]


class LocationBulkImport(BaseModel):
    """Schema for importing many locations at once."""

    locations: list[dict[str, Any]] = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Rows in LocationCreate shape; each row is validated on its own",
    )
    auto_create_service_areas: bool = Field(
        default=True,
        description="Create or link a service area for each active location",
    )


class BulkImportError(BaseModel):
    index: int
    error: str


class LocationBulkImportResponse(BaseModel):
    """Result of a bulk import. Each row succeeds or fails on its own."""

    created: int
    failed: int
    locations: list[LocationResponse]
    errors: list[BulkImportError]
