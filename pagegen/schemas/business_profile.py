"""Pydantic schemas for business hours and social links."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator, model_validator

from pagegen.models.business_profile import DayOfWeek, SocialPlatform

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class BusinessHoursEntry(BaseModel):
    """Hours for one weekday. Times are 24-hour "HH:MM"."""

    day_of_week: DayOfWeek
    opens: str | None = Field(default=None, pattern=TIME_PATTERN, examples=["08:00"])
    closes: str | None = Field(default=None, pattern=TIME_PATTERN, examples=["17:30"])
    is_closed: bool = False


class BusinessHoursUpdate(BaseModel):
    """Upserts the listed days. Days not listed are left as they are."""

    hours: list[BusinessHoursEntry]

    @model_validator(mode="after")
    def validate_unique_days(self) -> "BusinessHoursUpdate":
        days = [entry.day_of_week for entry in self.hours]
        if len(days) != len(set(days)):
            raise ValueError("Each day_of_week may appear only once")
        return self


class BusinessHoursResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    day_of_week: str
    opens: str | None
    closes: str | None
    is_closed: bool


class BusinessHoursListResponse(BaseModel):
    hours: list[BusinessHoursResponse]


class SocialLinkCreate(BaseModel):
    """Adds a link, or replaces the URL if the platform already has one."""

    platform: SocialPlatform
    url: HttpUrl = Field(..., description="Profile URL on the platform")

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class SocialLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    platform: str
    url: str
    created_at: datetime
    updated_at: datetime


class SocialLinkEnvelope(BaseModel):
    link: SocialLinkResponse


class SocialLinkListResponse(BaseModel):
    links: list[SocialLinkResponse]
