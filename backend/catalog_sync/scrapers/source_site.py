"""Adapter for the course catalog source site.

The site is a WordPress theme with a fixed layout; every selector used here
targets that layout. Listing pages are ``{category}/page/{n}/``, detail pages
carry a metadata list (``.article-meta li``) with Chinese labels.
"""

import re
from typing import List, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from catalog_sync.config import settings
from catalog_sync.core.exceptions import UpstreamFetchError
from catalog_sync.scrapers.base import (
    BaseSourceAdapter,
    CategoryLink,
    FetchedPage,
    ResourceDetail,
    ResourceStub,
)
from catalog_sync.scrapers.utils.html_cleaning import clean_description_html


TAG_PATTERN = re.compile(r"\[(.*?)\]")
POPULARITY_PATTERN = re.compile(r"\((\d+)\)")
COIN_PRICE_PATTERN = re.compile(r"(\d+)\s*金币")

PREVIEW_LINK_TEXT = "查看预览"

# (label, ResourceDetail attribute); first label found in an item wins
META_LABELS = (
    ("资源分类", "resource_category"),
    ("浏览热度", "popularity"),
    ("发布时间", "publish_date"),
    ("最近更新", "last_update"),
    ("文件内容", "content_info"),
    ("视频尺寸", "video_size"),
    ("视频大小", "file_size"),
    ("课时", "duration"),
    ("视频语言", "language"),
    ("视频字幕", "subtitle"),
)


def split_listing_title(title: str, url: str) -> ResourceStub:
    """Split a listing title into tags and chinese/english titles.

    ``"[PS][Design] 中文标题 | English Title"`` gives tags ``["ps", "design"]``,
    chinese ``"中文标题"`` and english ``"English Title"``.
    """
    tags: List[str] = []
    for raw in TAG_PATTERN.findall(title):
        tag = raw.strip().lower()
        if tag and tag not in tags:
            tags.append(tag)

    clean_title = TAG_PATTERN.sub("", title).strip()
    parts = [part.strip() for part in clean_title.split("|")]
    chinese = parts[0] if parts and parts[0] else url
    english = parts[1] if len(parts) > 1 and parts[1] else None

    return ResourceStub(url=url, chinese_title=chinese, english_title=english, tags=tags)


class SourceSiteAdapter(BaseSourceAdapter):
    """Fixed-format adapter for the source catalog site."""

    source_slug = "feifei"

    LISTING_SELECTOR = "section.container a"
    NAV_PARENT_SELECTOR = "li.menu-item-has-children"
    NAV_CHILD_SELECTOR = "ul.sub-menu > li > a"

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, site_url: Optional[str] = None):
        super().__init__(http_client)
        self.site_url = (site_url or settings.SOURCE_SITE_URL).rstrip("/")

    @property
    def category_prefix(self) -> str:
        return f"{self.site_url}/category"

    # ------------------------------------------------------------------
    # URLs and fetching
    # ------------------------------------------------------------------

    @staticmethod
    def build_page_url(category_url: str, page: int) -> str:
        """Page 1 is the category URL itself, later pages use ``/page/{n}/``."""
        if page <= 1:
            return category_url
        return f"{category_url.rstrip('/')}/page/{page}/"

    async def fetch_detail(self, url: str) -> ResourceDetail:
        """Fetch and parse a resource detail page.

        Raises:
            UpstreamFetchError: On transport failure or any non-2xx status
        """
        page = await self.fetch_page(url)
        if page.status_code >= 400:
            raise UpstreamFetchError(url, f"HTTP {page.status_code}", status_code=page.status_code)
        return self.parse_detail(page.html)

    async def fetch_navigation(self, url: Optional[str] = None) -> List[CategoryLink]:
        """Fetch the home page (or ``url``) and parse its category navigation."""
        target = url or self.site_url
        page = await self.fetch_page(target)
        if page.status_code >= 400:
            raise UpstreamFetchError(target, f"HTTP {page.status_code}", status_code=page.status_code)
        return self.parse_navigation(page.html, base_url=target)

    # ------------------------------------------------------------------
    # Listing pages
    # ------------------------------------------------------------------

    def parse_listing(self, html: str) -> List[ResourceStub]:
        """Parse resource links from a category listing page."""
        soup = BeautifulSoup(html, "html.parser")
        stubs = []
        seen_urls = set()

        for link in soup.select(self.LISTING_SELECTOR):
            href = (link.get("href") or "").strip()
            if not href.startswith("http"):
                continue
            if href.startswith(self.category_prefix):
                continue
            if href in seen_urls:
                continue

            title = (link.get("title") or link.get_text()).strip()
            stubs.append(split_listing_title(title, href))
            seen_urls.add(href)

        self.logger.debug("parsed_listing", count=len(stubs))
        return stubs

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def parse_navigation(self, html: str, base_url: Optional[str] = None) -> List[CategoryLink]:
        """Parse category links from the site menu.

        Menu parents with a sub-menu yield one link per child, titled
        ``"Parent-Child"``. When the menu markup is missing, every site link
        whose text is not a known non-category word is returned instead.
        """
        base = base_url or self.site_url
        soup = BeautifulSoup(html, "html.parser")
        links: List[CategoryLink] = []

        for item in soup.select(self.NAV_PARENT_SELECTOR):
            parent_link = item.find("a", recursive=False)
            if parent_link is None:
                continue
            parent_title = parent_link.get_text().strip()
            parent_url = (parent_link.get("href") or "").strip()
            if not parent_url:
                continue

            for child in item.select(self.NAV_CHILD_SELECTOR):
                child_title = child.get_text().strip()
                child_url = (child.get("href") or "").strip()
                if not child_title or not child_url:
                    continue
                if not child_url.startswith("http"):
                    child_url = urljoin(base, child_url)
                links.append(
                    CategoryLink(
                        title=f"{parent_title}-{child_title}",
                        url=child_url,
                        parent=parent_title,
                    )
                )

        if links:
            return links

        self.logger.info("navigation_menu_missing_using_fallback")
        skip_words = settings.get_skip_nav_words()
        for anchor in soup.find_all("a"):
            href = (anchor.get("href") or "").strip()
            text = anchor.get_text().strip()
            if not href or len(text) < 2:
                continue
            if not href.startswith("http"):
                href = urljoin(base, href)
            if not href.startswith(self.site_url):
                continue
            if any(word in text for word in skip_words):
                continue
            links.append(CategoryLink(title=text, url=href))

        return links

    # ------------------------------------------------------------------
    # Detail pages
    # ------------------------------------------------------------------

    def parse_detail(self, html: str) -> ResourceDetail:
        """Extract every optional field from a detail page."""
        soup = BeautifulSoup(html, "html.parser")
        detail = ResourceDetail()

        body = soup.body
        detail.body_html = body.decode_contents() if body is not None else ""

        # Tags
        for tag_link in soup.select(".entry-tags a"):
            name = tag_link.get_text().strip()
            if name:
                detail.tags.append(name)

        # Metadata list
        for item in soup.select(".article-meta li"):
            self._apply_meta_item(item, detail)

        # Coin price
        price_elem = soup.select_one(".prices-info .price-item.no")
        if price_elem is not None:
            match = COIN_PRICE_PATTERN.search(price_elem.get_text())
            if match:
                detail.coin_price = match.group(1)

        # Preview link, most specific button style first
        for selector in ("a.btn", "a.btn-dark", "a"):
            preview = next(
                (a for a in soup.select(selector) if PREVIEW_LINK_TEXT in a.get_text()),
                None,
            )
            if preview is not None and preview.get("href"):
                detail.preview_url = preview["href"].strip()
                break

        detail.image_url = self._extract_cover_image(soup)

        content = soup.select_one(".entry-content")
        if content is not None:
            detail.details_text = content.get_text().strip()

        article = soup.select_one("article.post-content") or soup.find("article")
        if article is not None:
            detail.details_html = clean_description_html(article.decode_contents())

        return detail

    def _apply_meta_item(self, item, detail: ResourceDetail) -> None:
        text = item.get_text(" ", strip=True)
        for label, attr in META_LABELS:
            if label not in text:
                continue

            value = text.split(label, 1)[1].lstrip(":： ").strip()
            if attr == "resource_category":
                anchors = [a.get_text().strip() for a in item.find_all("a")]
                anchors = [a for a in anchors if a]
                if anchors:
                    value = ", ".join(anchors)
            elif attr == "popularity":
                match = POPULARITY_PATTERN.search(value)
                if match:
                    value = match.group(1)

            if value:
                setattr(detail, attr, value)
            return

    @staticmethod
    def _extract_cover_image(soup: BeautifulSoup) -> str:
        og_image = soup.select_one('meta[property="og:image"]')
        if og_image is not None and og_image.get("content"):
            return og_image["content"].strip()

        for selector in (".wp-post-image", "img.attachment-large"):
            img = soup.select_one(selector)
            if img is not None and img.get("src"):
                return img["src"].strip()

        return ""
