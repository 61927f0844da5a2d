"""Category listing pagination as an explicit state machine.

A category is walked page by page until the site signals the end:

    FETCHING_PAGE -> NON_EMPTY_PAGE -> (sleep) -> FETCHING_PAGE ...
    FETCHING_PAGE -> NOT_FOUND       (terminal)
    FETCHING_PAGE -> NETWORK_ERROR   (terminal)
    FETCHING_PAGE -> EMPTY_PAGE      (terminal after page 1)

An empty first page does not stop the walk: the site sometimes renders the
first page of a category without list items while later pages still have
content.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, List, Optional

import structlog

from catalog_sync.config import settings
from catalog_sync.core.exceptions import UpstreamFetchError
from catalog_sync.scrapers.base import ResourceStub
from catalog_sync.scrapers.source_site import SourceSiteAdapter


logger = structlog.get_logger(__name__)


class PageState(str, Enum):
    FETCHING_PAGE = "fetching_page"
    NON_EMPTY_PAGE = "non_empty_page"
    EMPTY_PAGE = "empty_page"
    NOT_FOUND = "not_found"
    NETWORK_ERROR = "network_error"


@dataclass
class PageResult:
    """Outcome of one listing page."""

    page: int
    url: str
    state: PageState
    stubs: List[ResourceStub] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def terminal(self) -> bool:
        if self.state in (PageState.NOT_FOUND, PageState.NETWORK_ERROR):
            return True
        return self.state == PageState.EMPTY_PAGE and self.page > 1


class CategoryPager:
    """Lazy async iterator over the listing pages of one category.

    Each ``async for`` starts again from page 1. Fetch failures never
    raise out of the iterator; they end it with a NETWORK_ERROR result.

    Usage:
        async for result in CategoryPager(adapter, category.url):
            ...
    """

    def __init__(
        self,
        adapter: SourceSiteAdapter,
        category_url: str,
        max_pages: Optional[int] = None,
        page_delay: Optional[float] = None,
    ):
        self.adapter = adapter
        self.category_url = category_url
        self.max_pages = max_pages if max_pages is not None else settings.CRAWL_MAX_PAGES
        self.page_delay = page_delay if page_delay is not None else settings.CRAWL_PAGE_DELAY_SECONDS
        self.state: Optional[PageState] = None
        self.last_result: Optional[PageResult] = None

    def __aiter__(self) -> AsyncIterator[PageResult]:
        return self._walk()

    async def _walk(self) -> AsyncIterator[PageResult]:
        self.state = None
        self.last_result = None
        page = 1

        while page <= self.max_pages:
            url = self.adapter.build_page_url(self.category_url, page)
            self.state = PageState.FETCHING_PAGE

            result = await self._fetch(page, url)
            self.state = result.state
            self.last_result = result
            yield result

            if result.terminal:
                return

            page += 1
            if self.page_delay > 0:
                await asyncio.sleep(self.page_delay)

        logger.warning("pagination_max_pages_reached", url=self.category_url, max_pages=self.max_pages)

    async def _fetch(self, page: int, url: str) -> PageResult:
        try:
            fetched = await self.adapter.fetch_page(url)
        except UpstreamFetchError as e:
            logger.error("listing_page_fetch_failed", url=url, page=page, error=e.message)
            return PageResult(page=page, url=url, state=PageState.NETWORK_ERROR, error=e.message)

        if fetched.not_found:
            logger.info("listing_page_not_found", url=url, page=page)
            return PageResult(page=page, url=url, state=PageState.NOT_FOUND)

        stubs = self.adapter.parse_listing(fetched.html)
        if not stubs:
            logger.info("listing_page_empty", url=url, page=page)
            return PageResult(page=page, url=url, state=PageState.EMPTY_PAGE)

        logger.info("listing_page_parsed", url=url, page=page, count=len(stubs))
        return PageResult(page=page, url=url, state=PageState.NON_EMPTY_PAGE, stubs=stubs)
