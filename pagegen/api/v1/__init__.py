"""API v1 router and endpoint organization."""

from fastapi import APIRouter, Depends

from pagegen.api.v1.endpoints import businesses, jobs, keywords, locations, prompts, webhooks
from pagegen.core.auth import require_api_token
from pagegen.core.rate_limit import enforce_rate_limit

router = APIRouter(
    tags=["v1"],
    dependencies=[Depends(require_api_token), Depends(enforce_rate_limit)],
)

# Include domain-specific routers
router.include_router(businesses.router, prefix="/businesses", tags=["Businesses"])
router.include_router(
    keywords.keywords_router,
    prefix="/businesses/{business_id}/keywords",
    tags=["Keywords"],
)
router.include_router(
    keywords.service_areas_router,
    prefix="/businesses/{business_id}/service-areas",
    tags=["Service Areas"],
)
router.include_router(
    locations.router,
    prefix="/businesses/{business_id}/locations",
    tags=["Locations"],
)
router.include_router(
    prompts.router,
    prefix="/businesses/{business_id}/prompts",
    tags=["Prompt Templates"],
)
router.include_router(
    jobs.business_jobs_router,
    prefix="/businesses/{business_id}/jobs",
    tags=["Jobs"],
)
router.include_router(jobs.jobs_router, prefix="/jobs", tags=["Jobs"])
router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
