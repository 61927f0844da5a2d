"""Detail page scraping for external resources.

Fetches a resource's detail page, extracts metadata, tags, price, preview
link, cover image and description, and merges them into the stored record
without ever clearing a field that was set before.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.config import settings
from catalog_sync.core.exceptions import UpstreamFetchError, ValidationError
from catalog_sync.models.external_resource import ExternalResource
from catalog_sync.scrapers.base import ResourceDetail
from catalog_sync.scrapers.image_store import ImageStore
from catalog_sync.scrapers.source_site import SourceSiteAdapter
from catalog_sync.services.resource_service import ResourceService
from catalog_sync.services.tag_service import TagService

logger = structlog.get_logger(__name__)


@dataclass
class ScrapeOutcome:
    """Result of scraping one resource."""

    success: bool
    message: str
    resource: Optional[ExternalResource] = None
    tags: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Tally of a bulk operation over many resources."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: List[Dict[str, Union[int, str]]] = field(default_factory=list)

    def record_failure(self, resource_id: int, error: str) -> None:
        self.failed += 1
        self.errors.append({"resource_id": resource_id, "error": error})

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": self.errors,
        }


class DetailService:
    """Service for scraping resource detail pages."""

    def __init__(
        self,
        db: AsyncSession,
        adapter: Optional[SourceSiteAdapter] = None,
        image_store: Optional[ImageStore] = None,
        download_images: bool = True,
        item_delay: Optional[float] = None,
    ):
        """Initialize detail service.

        Args:
            db: Async database session
            adapter: Source site adapter, a default one is created if omitted
            image_store: Cover image store, built on the adapter if omitted
            download_images: Save cover images locally while scraping
            item_delay: Override of SCRAPE_ITEM_DELAY_SECONDS for bulk runs
        """
        self.db = db
        self.adapter = adapter or SourceSiteAdapter()
        self.image_store = image_store or ImageStore(self.adapter)
        self.download_images = download_images
        self.item_delay = item_delay if item_delay is not None else settings.SCRAPE_ITEM_DELAY_SECONDS
        self.resources = ResourceService(db)
        self.tags = TagService(db)
        self.logger = logger.bind(service="detail_service")

    async def scrape_resource(self, resource_id: int) -> ScrapeOutcome:
        """Scrape the detail page of one resource.

        Args:
            resource_id: ExternalResource id

        Returns:
            ScrapeOutcome; fetch failures are reported here, not raised

        Raises:
            NotFoundError: If the resource does not exist
            ValidationError: If the resource has no URL
            PersistenceError: If the update cannot be written
        """
        resource = await self.resources.get_or_raise(resource_id)
        if not resource.url:
            raise ValidationError(f"Resource {resource_id} has no URL")

        self.logger.info("scraping_resource", resource_id=resource_id, url=resource.url)

        try:
            detail = await self.adapter.fetch_detail(resource.url)
        except UpstreamFetchError as e:
            self.logger.error("detail_fetch_failed", resource_id=resource_id, error=e.message)
            return ScrapeOutcome(
                success=False,
                message=f"Failed to fetch detail page: {e.message}",
                resource=resource,
                error=e.message,
            )

        return await self.apply_detail(resource, detail)

    async def apply_detail(self, resource: ExternalResource, detail: ResourceDetail) -> ScrapeOutcome:
        """Merge parsed detail data into a resource.

        ``detail.body_html`` stays in memory; ``course_html`` is left as is.
        """
        patch = detail.to_patch()

        if detail.image_url and self.download_images:
            local_path = await self.image_store.download(detail.image_url, resource.id)
            if local_path:
                patch["local_image_path"] = local_path

        await self.resources.update_partial(resource, patch)
        tag_names = await self.tags.merge_tags(resource.id, detail.tags)

        self.logger.info(
            "resource_scraped",
            resource_id=resource.id,
            fields=sorted(patch.keys()),
            tags=len(tag_names),
        )
        return ScrapeOutcome(
            success=True,
            message=f"Updated {len(patch)} fields",
            resource=resource,
            tags=tag_names,
        )

    async def gather_details(
        self,
        urls: Iterable[str],
        concurrency: Optional[int] = None,
    ) -> Dict[str, Union[ResourceDetail, UpstreamFetchError]]:
        """Fetch several detail pages concurrently.

        Only network work runs concurrently; nothing here touches the session.

        Returns:
            Mapping of URL to its parsed detail, or the fetch error
        """
        semaphore = asyncio.Semaphore(concurrency or settings.DETAIL_GATHER_CONCURRENCY)

        async def fetch_one(url: str):
            async with semaphore:
                try:
                    return url, await self.adapter.fetch_detail(url)
                except UpstreamFetchError as e:
                    return url, e

        pairs = await asyncio.gather(*(fetch_one(url) for url in urls))
        return dict(pairs)

    async def scrape_category(self, category_id: int, concurrent: bool = False) -> BatchResult:
        """Scrape every resource of a category.

        Resources are processed one at a time with SCRAPE_ITEM_DELAY_SECONDS
        between them. With ``concurrent`` the pages are prefetched in
        bounded batches instead, and only the writes stay sequential.

        Raises:
            NotFoundError: If the category does not exist
        """
        await self.resources.get_category_or_raise(category_id)
        resource_ids = await self.resources.list_ids_by_category(category_id)
        self.logger.info("category_scrape_started", category_id=category_id, count=len(resource_ids))

        if concurrent:
            result = await self._scrape_prefetched(resource_ids)
        else:
            result = BatchResult(total=len(resource_ids))
            for index, resource_id in enumerate(resource_ids):
                await self._scrape_one(resource_id, result)
                if index < len(resource_ids) - 1 and self.item_delay > 0:
                    await asyncio.sleep(self.item_delay)

        self.logger.info("category_scrape_finished", category_id=category_id, **result.to_dict())
        return result

    async def rescrape_resources(self, resource_ids: List[int]) -> BatchResult:
        """Re-scrape a list of resources, pausing every BULK_PAUSE_EVERY items."""
        result = BatchResult(total=len(resource_ids))
        for index, resource_id in enumerate(resource_ids, start=1):
            await self._scrape_one(resource_id, result)
            if index % settings.BULK_PAUSE_EVERY == 0 and index < len(resource_ids):
                await asyncio.sleep(settings.BULK_PAUSE_SECONDS)

        self.logger.info("rescrape_finished", **result.to_dict())
        return result

    async def _scrape_one(self, resource_id: int, result: BatchResult) -> None:
        try:
            outcome = await self.scrape_resource(resource_id)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            self.logger.error("resource_scrape_error", resource_id=resource_id, error=str(e), exc_info=True)
            result.record_failure(resource_id, str(e))
            return

        if outcome.success:
            result.succeeded += 1
        else:
            result.record_failure(resource_id, outcome.error or outcome.message)

    async def _scrape_prefetched(self, resource_ids: List[int]) -> BatchResult:
        result = BatchResult(total=len(resource_ids))
        batch_size = settings.DETAIL_GATHER_CONCURRENCY

        for start in range(0, len(resource_ids), batch_size):
            # Plain (id, url) pairs: a rollback below expires loaded objects
            pairs = []
            for resource_id in resource_ids[start:start + batch_size]:
                resource = await self.resources.get(resource_id)
                if resource is None or not resource.url:
                    result.record_failure(resource_id, "Resource missing or without URL")
                    continue
                pairs.append((resource_id, resource.url))

            details = await self.gather_details([url for _, url in pairs])

            for resource_id, url in pairs:
                detail = details[url]
                if isinstance(detail, UpstreamFetchError):
                    result.record_failure(resource_id, detail.message)
                    continue
                try:
                    resource = await self.resources.get_or_raise(resource_id)
                    await self.apply_detail(resource, detail)
                    await self.db.commit()
                    result.succeeded += 1
                except Exception as e:
                    await self.db.rollback()
                    self.logger.error("resource_scrape_error", resource_id=resource_id, error=str(e), exc_info=True)
                    result.record_failure(resource_id, str(e))

        return result
