"""Tests for the source site adapter: URL building, fetching and page parsing."""

import httpx
import pytest
from tenacity import wait_none

from catalog_sync.core.exceptions import UpstreamFetchError
from catalog_sync.scrapers.base import BaseSourceAdapter, ResourceDetail, ResourceStub
from catalog_sync.scrapers.source_site import SourceSiteAdapter, split_listing_title

from conftest import CATEGORY_URL, DETAIL_HTML, NAV_HTML, SITE, SPARSE_DETAIL_HTML, listing_html


@pytest.fixture
def adapter() -> SourceSiteAdapter:
    return SourceSiteAdapter(site_url=SITE)


# ============================================================================
# LISTING PAGES
# ============================================================================

class TestListingParsing:
    """Test listing titles and link extraction."""

    def test_split_title_with_tags_and_english(self):
        stub = split_listing_title("[Udemy][PS][udemy] 平面设计大师课 | Graphic Design Masterclass", f"{SITE}/1.html")
        assert stub.tags == ["udemy", "ps"]
        assert stub.chinese_title == "平面设计大师课"
        assert stub.english_title == "Graphic Design Masterclass"

    def test_split_title_without_english(self):
        stub = split_listing_title("平面设计大师课", f"{SITE}/1.html")
        assert stub.tags == []
        assert stub.english_title is None

    def test_split_title_empty_falls_back_to_url(self):
        stub = split_listing_title("[Udemy]", f"{SITE}/1.html")
        assert stub.chinese_title == f"{SITE}/1.html"

    def test_stub_requires_url(self):
        with pytest.raises(ValueError):
            ResourceStub(url="", chinese_title="x")

    def test_parse_listing_filters_links(self, adapter):
        html = listing_html(
            (f"{SITE}/1.html", "[PS] 课程一 | Course One"),
            (f"{SITE}/2.html", "课程二"),
            (f"{SITE}/1.html", "[PS] 课程一 | Course One"),
        )
        stubs = adapter.parse_listing(html)

        assert [s.url for s in stubs] == [f"{SITE}/1.html", f"{SITE}/2.html"]
        assert stubs[0].english_title == "Course One"
        assert stubs[0].tags == ["ps"]

    def test_parse_listing_without_items(self, adapter):
        assert adapter.parse_listing(listing_html()) == []

    def test_build_page_url(self):
        assert SourceSiteAdapter.build_page_url(CATEGORY_URL, 1) == CATEGORY_URL
        assert SourceSiteAdapter.build_page_url(CATEGORY_URL + "/", 3) == f"{CATEGORY_URL}/page/3/"


# ============================================================================
# DETAIL PAGES
# ============================================================================

class TestDetailParsing:
    """Test extraction of every optional detail field."""

    def test_parse_full_detail(self, adapter):
        detail = adapter.parse_detail(DETAIL_HTML)

        assert detail.tags == ["Udemy", "设计"]
        assert detail.resource_category == "设计, 平面"
        assert detail.popularity == "1234"
        assert detail.publish_date == "2024-01-02"
        assert detail.last_update == "2024-02-03"
        assert detail.content_info == "视频+素材"
        assert detail.video_size == "1920x1080"
        assert detail.file_size == "3.5 GB"
        assert detail.duration == "12小时30分钟"
        assert detail.language == "英语"
        assert detail.subtitle == "中英字幕"
        assert detail.coin_price == "15"
        assert detail.preview_url == "https://preview.example.com/v/1"
        assert detail.image_url == "https://img.example.com/covers/cover.png"
        assert detail.details_text == "课程介绍正文"
        assert "entry-tags" in detail.body_html

    def test_details_html_is_cleaned(self, adapter):
        detail = adapter.parse_detail(DETAIL_HTML)

        assert "学习平面设计的全部流程" in detail.details_html
        assert "本站所有文章" not in detail.details_html
        assert "lwptoc" not in detail.details_html

    def test_cover_image_fallback(self, adapter):
        html = '<html><body><img class="attachment-large" src="https://img.example.com/a.jpg"></body></html>'
        assert adapter.parse_detail(html).image_url == "https://img.example.com/a.jpg"

    def test_missing_fields_stay_empty(self, adapter):
        detail = adapter.parse_detail(SPARSE_DETAIL_HTML)

        assert detail.popularity == "2000"
        assert detail.coin_price == ""
        assert detail.to_patch() == {"popularity": "2000"}

    def test_to_patch_skips_empty_values(self):
        patch = ResourceDetail(duration="2小时", language="").to_patch()
        assert patch == {"duration": "2小时"}


# ============================================================================
# NAVIGATION
# ============================================================================

class TestNavigationParsing:
    """Test category discovery from the site menu."""

    def test_sub_menu_links(self, adapter):
        links = adapter.parse_navigation(NAV_HTML)

        assert [link.title for link in links] == ["设计-平面设计", "设计-UI设计", "开发-Python"]
        assert links[1].url == f"{SITE}/category/design/ui"
        assert links[0].parent == "设计"

    def test_fallback_without_menu(self, adapter):
        html = f"""<html><body>
            <a href="{SITE}/">首页</a>
            <a href="{SITE}/login">登录</a>
            <a href="{SITE}/category/photo">摄影教程</a>
            <a href="https://other.example.com/x">外部链接</a>
            <a href="{SITE}/x">X</a>
        </body></html>"""
        links = adapter.parse_navigation(html)

        assert [(link.title, link.url) for link in links] == [("摄影教程", f"{SITE}/category/photo")]


# ============================================================================
# FETCHING
# ============================================================================

class TestFetching:
    """Test HTTP status handling through a mocked transport."""

    async def test_fetch_detail(self, fake_site):
        fake_site.routes[f"{SITE}/1.html"] = DETAIL_HTML
        async with fake_site.adapter() as adapter:
            detail = await adapter.fetch_detail(f"{SITE}/1.html")
        assert detail.coin_price == "15"

    async def test_fetch_detail_not_found_raises(self, fake_site):
        async with fake_site.adapter() as adapter:
            with pytest.raises(UpstreamFetchError) as exc_info:
                await adapter.fetch_detail(f"{SITE}/missing.html")
        assert exc_info.value.status_code == 404

    async def test_fetch_page_keeps_404(self, fake_site):
        async with fake_site.adapter() as adapter:
            page = await adapter.fetch_page(f"{SITE}/missing.html")
        assert page.not_found

    async def test_fetch_page_server_error_raises(self, fake_site):
        fake_site.routes[f"{SITE}/broken"] = (503, "unavailable")
        async with fake_site.adapter() as adapter:
            with pytest.raises(UpstreamFetchError) as exc_info:
                await adapter.fetch_page(f"{SITE}/broken")
        assert exc_info.value.status_code == 503

    async def test_fetch_navigation(self, fake_site):
        fake_site.routes[f"{SITE}/"] = NAV_HTML
        async with fake_site.adapter() as adapter:
            links = await adapter.fetch_navigation(f"{SITE}/")
        assert len(links) == 3


class TestFetchRetry:
    """Test that transport failures are retried before surfacing."""

    @pytest.fixture(autouse=True)
    def no_backoff(self, monkeypatch):
        monkeypatch.setattr(BaseSourceAdapter._get.retry, "wait", wait_none())

    @staticmethod
    def flaky_adapter(failures: int, calls: list) -> SourceSiteAdapter:
        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            if len(calls) <= failures:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, html=listing_html((f"{SITE}/1.html", "课程")))

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return SourceSiteAdapter(http_client=client, site_url=SITE)

    async def test_transient_error_is_retried(self):
        calls = []
        async with self.flaky_adapter(2, calls) as adapter:
            page = await adapter.fetch_page(CATEGORY_URL)

        assert len(calls) == 3
        assert page.status_code == 200

    async def test_persistent_error_raises_after_three_attempts(self):
        calls = []
        async with self.flaky_adapter(10, calls) as adapter:
            with pytest.raises(UpstreamFetchError):
                await adapter.fetch_page(CATEGORY_URL)

        assert len(calls) == 3
