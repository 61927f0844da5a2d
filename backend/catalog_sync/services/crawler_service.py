"""Category crawling and category discovery.

Walks the listing pages of one external category, creating resources on
first sighting and refreshing titles and tags on later crawls. Also imports
the site's navigation menu as external categories.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.models.external_category import ExternalCategory
from catalog_sync.models.external_resource import ExternalResource
from catalog_sync.scrapers.pagination import CategoryPager, PageState
from catalog_sync.scrapers.source_site import SourceSiteAdapter
from catalog_sync.services.resource_service import ResourceService
from catalog_sync.services.tag_service import TagService

logger = structlog.get_logger(__name__)


@dataclass
class CrawlResult:
    """Outcome of crawling one category."""

    resources: List[ExternalResource] = field(default_factory=list)
    pages_crawled: int = 0
    created_count: int = 0
    message: str = ""
    terminal_state: Optional[PageState] = None

    @property
    def success(self) -> bool:
        return self.terminal_state != PageState.NETWORK_ERROR


@dataclass
class DiscoveryResult:
    """Outcome of importing the navigation menu."""

    categories: List[ExternalCategory] = field(default_factory=list)
    created: int = 0
    updated: int = 0


class CrawlerService:
    """Service for crawling category listings into external resources."""

    def __init__(
        self,
        db: AsyncSession,
        adapter: Optional[SourceSiteAdapter] = None,
        max_pages: Optional[int] = None,
        page_delay: Optional[float] = None,
    ):
        """Initialize crawler service.

        Args:
            db: Async database session
            adapter: Source site adapter, a default one is created if omitted
            max_pages: Override of CRAWL_MAX_PAGES
            page_delay: Override of CRAWL_PAGE_DELAY_SECONDS
        """
        self.db = db
        self.adapter = adapter or SourceSiteAdapter()
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.resources = ResourceService(db)
        self.tags = TagService(db)
        self.logger = logger.bind(service="crawler_service")

    async def crawl_category(self, category_id: int) -> CrawlResult:
        """Crawl every listing page of a category.

        Fetch failures end the crawl early and are reported in the result;
        resources saved before the failure are kept.

        Args:
            category_id: ExternalCategory id

        Returns:
            CrawlResult with the resources touched in this crawl

        Raises:
            NotFoundError: If the category does not exist
        """
        category = await self.resources.get_category_or_raise(category_id)
        category_url = category.url
        self.logger.info("crawl_started", category_id=category_id, url=category_url)

        result = CrawlResult()
        pager = CategoryPager(
            self.adapter,
            category_url,
            max_pages=self.max_pages,
            page_delay=self.page_delay,
        )

        async for page in pager:
            result.terminal_state = page.state
            if page.state != PageState.NON_EMPTY_PAGE:
                continue

            result.pages_crawled += 1
            for stub in page.stubs:
                resource, created = await self.resources.upsert_stub(category_id, stub)
                if created:
                    result.created_count += 1
                if stub.tags:
                    await self.tags.attach_tags(resource.id, stub.tags)
                result.resources.append(resource)

        if result.terminal_state == PageState.NETWORK_ERROR:
            error = pager.last_result.error if pager.last_result else None
            result.message = (
                f"Crawl stopped by a network error after {result.pages_crawled} pages "
                f"({len(result.resources)} resources saved): {error}"
            )
        else:
            result.message = (
                f"Crawled {result.pages_crawled} pages, {len(result.resources)} resources "
                f"({result.created_count} new)"
            )

        self.logger.info(
            "crawl_finished",
            category_id=category_id,
            pages=result.pages_crawled,
            resources=len(result.resources),
            created=result.created_count,
            terminal_state=result.terminal_state.value if result.terminal_state else None,
        )
        return result

    async def discover_categories(self, url: Optional[str] = None) -> DiscoveryResult:
        """Import the site navigation menu as external categories.

        Known URLs only get their title refreshed.

        Raises:
            UpstreamFetchError: If the navigation page cannot be fetched
        """
        links = await self.adapter.fetch_navigation(url)
        self.logger.info("navigation_parsed", count=len(links))

        result = DiscoveryResult()
        for index, link in enumerate(links):
            category, created = await self.resources.upsert_category(link.title, link.url, sort_order=index)
            if created:
                result.created += 1
            else:
                result.updated += 1
            result.categories.append(category)

        self.logger.info("categories_discovered", created=result.created, updated=result.updated)
        return result
