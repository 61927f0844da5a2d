"""Pipeline endpoints: discover, crawl, scrape, normalize and publish.

Single-item operations run inside the request and return the updated
record. Bulk operations are enqueued on the job queue and answered with
202 and a job id that can be polled at ``/jobs/{job_id}``.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.dependencies import get_db, get_job_queue, get_normalizer, get_source_adapter
from catalog_sync.jobs.handlers import JOB_PUBLISH_CATEGORY, JOB_SWEEP_FIRST_CATEGORY
from catalog_sync.jobs.queue import JobQueue
from catalog_sync.schemas import (
    ApiResponse,
    CatalogEntryResponse,
    CrawlResponse,
    DiscoveryResponse,
    ExternalCategoryResponse,
    ExternalResourceBrief,
    ExternalResourceResponse,
    JobAcceptedResponse,
    JobStatusResponse,
    NormalizedTextResponse,
    Outline,
    PublishResponse,
    ScrapeResponse,
    TaxonomyImportResponse,
)
from catalog_sync.scrapers.source_site import SourceSiteAdapter
from catalog_sync.services.crawler_service import CrawlerService
from catalog_sync.services.detail_service import DetailService
from catalog_sync.services.normalizer_service import NormalizerService
from catalog_sync.services.publisher_service import PublisherService
from catalog_sync.services.resource_service import ResourceService
from catalog_sync.services.taxonomy_service import TaxonomyService

router = APIRouter()
logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@router.post("/categories/discover", response_model=ApiResponse[DiscoveryResponse])
async def discover_categories(
    url: Optional[str] = Query(None, description="Page to read the menu from, defaults to the site home"),
    db: AsyncSession = Depends(get_db),
    adapter: SourceSiteAdapter = Depends(get_source_adapter),
):
    """Read the site navigation menu into external categories."""
    result = await CrawlerService(db, adapter=adapter).discover_categories(url)
    return ApiResponse(
        message=f"Discovered {len(result.categories)} categories ({result.created} new)",
        data=DiscoveryResponse(
            created=result.created,
            updated=result.updated,
            categories=[ExternalCategoryResponse.model_validate(c) for c in result.categories],
        ),
    )


@router.post("/categories/import", response_model=ApiResponse[TaxonomyImportResponse])
async def import_categories(db: AsyncSession = Depends(get_db)):
    """Create or update internal categories from the valid external ones."""
    stats = await TaxonomyService(db).import_external_categories()
    return ApiResponse(
        message=f"Imported categories: {stats['created']} created, {stats['updated']} updated",
        data=TaxonomyImportResponse(**stats),
    )


@router.post(
    "/categories/first/sweep",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def sweep_first_category(queue: JobQueue = Depends(get_job_queue)):
    """Queue a crawl of the first valid category followed by a detail scrape of each resource."""
    job_id = await queue.enqueue(JOB_SWEEP_FIRST_CATEGORY)
    return JobAcceptedResponse(job_id=job_id, kind=JOB_SWEEP_FIRST_CATEGORY)


@router.post("/categories/{category_id}/crawl", response_model=ApiResponse[CrawlResponse])
async def crawl_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    adapter: SourceSiteAdapter = Depends(get_source_adapter),
):
    """Crawl every listing page of one category."""
    result = await CrawlerService(db, adapter=adapter).crawl_category(category_id)
    return ApiResponse(
        status="success" if result.success else "partial",
        message=result.message,
        data=CrawlResponse(
            pages_crawled=result.pages_crawled,
            created_count=result.created_count,
            terminal_state=result.terminal_state.value if result.terminal_state else None,
            resources=[ExternalResourceBrief.model_validate(r) for r in result.resources],
        ),
    )


@router.post(
    "/categories/{category_id}/publish",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def publish_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    """Queue publishing of every unlinked resource in a category."""
    await ResourceService(db).get_category_or_raise(category_id)
    job_id = await queue.enqueue(JOB_PUBLISH_CATEGORY, category_id=category_id)
    return JobAcceptedResponse(job_id=job_id, kind=JOB_PUBLISH_CATEGORY)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@router.post("/resources/{resource_id}/scrape", response_model=ApiResponse[ScrapeResponse])
async def scrape_resource(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    adapter: SourceSiteAdapter = Depends(get_source_adapter),
):
    """Scrape one resource's detail page."""
    outcome = await DetailService(db, adapter=adapter).scrape_resource(resource_id)
    return ApiResponse(
        status="success" if outcome.success else "error",
        message=outcome.message,
        data=ScrapeResponse(
            success=outcome.success,
            error=outcome.error,
            tags=outcome.tags,
            resource=ExternalResourceResponse.model_validate(outcome.resource) if outcome.resource else None,
        ),
    )


@router.post("/resources/{resource_id}/outline", response_model=ApiResponse[Outline])
async def extract_outline(
    resource_id: int,
    language: Optional[str] = Query(None, description="Language of the translated titles"),
    normalizer: NormalizerService = Depends(get_normalizer),
):
    """Extract the course outline from the stored course HTML."""
    outline = await normalizer.extract_outline(resource_id, target_language=language)
    return ApiResponse(
        message=f"Extracted {len(outline.sections)} sections, {outline.lecture_count} lectures",
        data=outline,
    )


@router.post("/resources/{resource_id}/normalize", response_model=ApiResponse[NormalizedTextResponse])
async def normalize_resource(
    resource_id: int,
    normalizer: NormalizerService = Depends(get_normalizer),
):
    """Convert the stored description HTML into clean text."""
    text = await normalizer.convert_html_to_text(resource_id)
    return ApiResponse(
        message="Description converted",
        data=NormalizedTextResponse(resource_id=resource_id, normalized_text=text),
    )


@router.post("/resources/{resource_id}/publish", response_model=ApiResponse[PublishResponse])
async def publish_resource(
    resource_id: int,
    db: AsyncSession = Depends(get_db),
    normalizer: NormalizerService = Depends(get_normalizer),
):
    """Publish one resource to the catalog (idempotent)."""
    outcome = await PublisherService(db, normalizer=normalizer).publish_resource(resource_id)
    return ApiResponse(
        message=outcome.message,
        data=PublishResponse(
            success=outcome.success,
            action=outcome.action,
            entry=CatalogEntryResponse.model_validate(outcome.entry) if outcome.entry else None,
        ),
    )


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


@router.get("/jobs/{job_id}", response_model=ApiResponse[JobStatusResponse])
async def get_job(job_id: str, queue: JobQueue = Depends(get_job_queue)):
    """Return the status and result of a queued job."""
    job = await queue.get_job(job_id)
    return ApiResponse(message=f"Job is {job.status}", data=JobStatusResponse.model_validate(job))
