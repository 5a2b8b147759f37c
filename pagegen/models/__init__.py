"""Models layer - SQLAlchemy ORM models.

Models define the database schema and relationships.
All models inherit from the Base class defined in core.database.
"""

from pagegen.core.database import Base
from pagegen.models.business import Business, Questionnaire
from pagegen.models.business_profile import (
    BusinessHours,
    DayOfWeek,
    SocialLink,
    SocialPlatform,
)
from pagegen.models.generation_job import (
    MAX_ATTEMPTS,
    GenerationJob,
    JobPage,
    JobStatus,
    PageStatus,
)
from pagegen.models.keyword import Keyword, KeywordLanguage, SearchIntent
from pagegen.models.location import Location, LocationStatus
from pagegen.models.prompt_template import PromptTemplate
from pagegen.models.service_area import ServiceArea
from pagegen.models.webhook import Webhook, WebhookEvent

__all__ = [
    "Base",
    "Business",
    "BusinessHours",
    "DayOfWeek",
    "GenerationJob",
    "JobPage",
    "JobStatus",
    "Keyword",
    "KeywordLanguage",
    "Location",
    "LocationStatus",
    "MAX_ATTEMPTS",
    "PageStatus",
    "PromptTemplate",
    "Questionnaire",
    "SearchIntent",
    "ServiceArea",
    "SocialLink",
    "SocialPlatform",
    "Webhook",
    "WebhookEvent",
]
