"""Base source adapter and the normalized structures it returns.

A source adapter owns the HTTP client used against the source site and
turns raw pages into the dataclasses below. It never touches the database;
services take its output and persist it.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import httpx
import structlog

from catalog_sync.config import settings
from catalog_sync.core.exceptions import UpstreamFetchError
from catalog_sync.scrapers.utils.retry import http_retry


@dataclass
class FetchedPage:
    """Raw HTTP result for one page fetch."""

    url: str
    status_code: int
    html: str

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


@dataclass
class CategoryLink:
    """Category link discovered in the site navigation."""

    title: str
    url: str
    parent: Optional[str] = None


@dataclass
class ResourceStub:
    """Resource link found on a category listing page."""

    url: str
    chinese_title: str
    english_title: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.url:
            raise ValueError("url is required")
        if not self.chinese_title:
            raise ValueError("chinese_title is required")


@dataclass
class ResourceDetail:
    """Everything extracted from one resource detail page.

    Empty strings mean "not found on the page"; callers only persist
    non-empty values. ``body_html`` is an in-memory working buffer and is
    not written back to the resource.
    """

    body_html: str = ""
    tags: List[str] = field(default_factory=list)
    resource_category: str = ""
    popularity: str = ""
    publish_date: str = ""
    last_update: str = ""
    content_info: str = ""
    video_size: str = ""
    file_size: str = ""
    duration: str = ""
    language: str = ""
    subtitle: str = ""
    coin_price: str = ""
    preview_url: str = ""
    image_url: str = ""
    details_text: str = ""
    details_html: str = ""

    # Resource columns filled from this structure, in persistence order
    PERSISTED_FIELDS = (
        "details_html",
        "image_url",
        "resource_category",
        "popularity",
        "publish_date",
        "last_update",
        "content_info",
        "file_size",
        "video_size",
        "duration",
        "language",
        "subtitle",
        "details_text",
        "coin_price",
        "preview_url",
    )

    def to_patch(self) -> dict:
        """Build a partial update containing only non-empty values."""
        patch = {}
        for name in self.PERSISTED_FIELDS:
            value = getattr(self, name)
            if value:
                patch[name] = value
        return patch


class BaseSourceAdapter:
    """HTTP plumbing shared by source adapters.

    The httpx client can be injected (tests pass one backed by
    ``httpx.MockTransport``); otherwise one is created lazily and closed by
    ``close()``.
    """

    source_slug: str = ""  # Must be overridden in subclass

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        """Initialize the adapter.

        Args:
            http_client: Optional pre-configured async HTTP client
        """
        self._client = http_client
        self._owns_client = http_client is None
        self.logger = structlog.get_logger(__name__).bind(adapter=self.source_slug)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=settings.HTTP_TIMEOUT_SECONDS,
                follow_redirects=True,
                headers={"User-Agent": settings.USER_AGENT},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @http_retry
    async def _get(self, url: str) -> httpx.Response:
        return await self.client.get(url)

    async def fetch_page(self, url: str) -> FetchedPage:
        """Fetch a page, tolerating client errors.

        Statuses below 500 are returned to the caller (a 404 is meaningful
        during pagination); transport failures and 5xx responses raise.

        Raises:
            UpstreamFetchError: On transport failure or a 5xx status
        """
        self.logger.info("fetching_page", url=url)
        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            raise UpstreamFetchError(url, str(e) or e.__class__.__name__) from e

        if response.status_code >= 500:
            raise UpstreamFetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)

        return FetchedPage(url=url, status_code=response.status_code, html=response.text)

    async def fetch_bytes(self, url: str) -> tuple[bytes, Optional[str]]:
        """Fetch binary content (cover images).

        Returns:
            Tuple of (content, content-type header or None)

        Raises:
            UpstreamFetchError: On transport failure or a non-2xx status
        """
        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            raise UpstreamFetchError(url, str(e) or e.__class__.__name__) from e

        if not response.is_success:
            raise UpstreamFetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)

        return response.content, response.headers.get("content-type")
