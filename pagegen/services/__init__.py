"""Services layer - Business logic and orchestration.

Services coordinate between repositories, integrations, and other services
to implement business use cases. Each service is bound to one session; the
request (or worker) that owns the session decides when to commit, except
where a service must commit before a side effect leaves the process.
"""

from pagegen.services.business import BusinessService, compute_completeness_score
from pagegen.services.business_profile import BusinessProfileService
from pagegen.services.content_generation import (
    ContentGenerator,
    GeneratedPage,
    GenerationContext,
    GenerationError,
    create_llm_client,
    parse_generated_content,
)
from pagegen.services.job_fanout import (
    PAGE_TYPE_RECIPES,
    JobFanoutService,
    PagePlan,
    build_page_plans,
    normalize_page_type,
)
from pagegen.services.job_pages import (
    JobPageService,
    calculate_cost,
    release_stale_claims_job,
)
from pagegen.services.keyword import KeywordService
from pagegen.services.location import LocationService
from pagegen.services.prompt_template import PromptTemplateService, get_active_template
from pagegen.services.service_area import ServiceAreaService
from pagegen.services.template import build_page_variables, render_template
from pagegen.services.webhook import WebhookService

__all__ = [
    "PAGE_TYPE_RECIPES",
    "BusinessProfileService",
    "BusinessService",
    "ContentGenerator",
    "GeneratedPage",
    "GenerationContext",
    "GenerationError",
    "JobFanoutService",
    "JobPageService",
    "KeywordService",
    "LocationService",
    "PagePlan",
    "PromptTemplateService",
    "ServiceAreaService",
    "WebhookService",
    "build_page_plans",
    "build_page_variables",
    "calculate_cost",
    "compute_completeness_score",
    "create_llm_client",
    "get_active_template",
    "normalize_page_type",
    "parse_generated_content",
    "release_stale_claims_job",
    "render_template",
]
