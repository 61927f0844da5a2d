"""Pytest configuration and shared fixtures."""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections import deque
from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_sync.config import settings
from catalog_sync.core.exceptions import UpstreamFetchError
from catalog_sync.llm.client import parse_json_response
from catalog_sync.models import Author, Base, Category, ExternalCategory, ExternalResource
from catalog_sync.scrapers.source_site import SourceSiteAdapter


SITE = settings.SOURCE_SITE_URL.rstrip("/")
CATEGORY_URL = f"{SITE}/category/design"


# ============================================================================
# HTML SAMPLES
# ============================================================================

def listing_html(*items: Tuple[str, str]) -> str:
    """Build a listing page from (url, title) pairs."""
    links = "\n".join(
        f'<article class="post"><a href="{url}" title="{title}">{title}</a></article>'
        for url, title in items
    )
    return f"""<html><body>
<header><a href="{SITE}/">首页</a></header>
<section class="container">
{links}
<a href="{CATEGORY_URL}/page/2/">下一页</a>
<a href="/about">关于</a>
</section>
</body></html>"""


DETAIL_HTML = f"""<html>
<head><meta property="og:image" content="https://img.example.com/covers/cover.png"></head>
<body>
<div class="entry-tags"><a href="{SITE}/tag/udemy">Udemy</a><a href="{SITE}/tag/design">设计</a></div>
<ul class="article-meta">
<li>资源分类: <a href="{SITE}/category/design">设计</a> <a href="{SITE}/category/design/graphic">平面</a></li>
<li>浏览热度: (1234)</li>
<li>发布时间: 2024-01-02</li>
<li>最近更新: 2024-02-03</li>
<li>文件内容: 视频+素材</li>
<li>视频尺寸: 1920x1080</li>
<li>视频大小: 3.5 GB</li>
<li>课时: 12小时30分钟</li>
<li>视频语言: 英语</li>
<li>视频字幕: 中英字幕</li>
</ul>
<div class="prices-info"><div class="price-item no">价格 15 金币</div></div>
<a class="btn" href="https://preview.example.com/v/1">查看预览</a>
<article class="post-content">
<div class="lwptoc lwptoc-light">目录 1. 课程介绍</div>
<h2>课程介绍</h2>
<p>学习平面设计的全部流程。</p>
<p>声明：本站所有文章，如无特殊说明或标注，均为本站原创发布。任何个人或组织，在未征得本站同意时，禁止复制、盗用、采集、发布本站内容到任何网站、书籍等各类媒体平台。如若本站内容侵犯了原著者的合法权益，可联系我们进行处理。</p>
</article>
<div class="entry-content">课程介绍正文</div>
</body></html>"""

SPARSE_DETAIL_HTML = """<html><body>
<ul class="article-meta"><li>浏览热度: (2000)</li></ul>
</body></html>"""

NAV_HTML = f"""<html><body>
<nav><ul class="menu">
<li class="menu-item"><a href="{SITE}/">首页</a></li>
<li class="menu-item menu-item-has-children">
  <a href="{SITE}/category/design">设计</a>
  <ul class="sub-menu">
    <li><a href="{SITE}/category/design/graphic">平面设计</a></li>
    <li><a href="/category/design/ui">UI设计</a></li>
  </ul>
</li>
<li class="menu-item menu-item-has-children">
  <a href="{SITE}/category/dev">开发</a>
  <ul class="sub-menu">
    <li><a href="{SITE}/category/dev/python">Python</a></li>
  </ul>
</li>
</ul></nav>
</body></html>"""


# ============================================================================
# FAKE UPSTREAMS
# ============================================================================

Route = Union[str, Tuple[int, str], httpx.Response]


class FakeSite:
    """Route table served through ``httpx.MockTransport``.

    Unknown URLs answer 404. Every requested URL is recorded.
    """

    def __init__(self, routes: Dict[str, Route] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.requested: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, html="<html><body>Not Found</body></html>")
        if isinstance(route, httpx.Response):
            return route
        if isinstance(route, tuple):
            status_code, body = route
            return httpx.Response(status_code, html=body)
        return httpx.Response(200, html=route)

    def adapter(self) -> SourceSiteAdapter:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        return SourceSiteAdapter(http_client=client, site_url=SITE)


class StubCompletionClient:
    """Stand-in for CompletionClient that replays canned replies in order."""

    def __init__(self, replies=None, error: Exception = None):
        self.replies = deque(replies or [])
        self.error = error
        self.calls: List[list] = []

    async def complete(self, messages, **kwargs) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.replies.popleft()

    async def complete_json(self, messages, **kwargs):
        return parse_json_response(await self.complete(messages, **kwargs))

    async def close(self) -> None:
        pass


def failing_completion_client() -> StubCompletionClient:
    return StubCompletionClient(error=UpstreamFetchError("ai-completion", "connection refused"))


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def fast_pipeline(monkeypatch, tmp_path):
    """Remove pacing delays and keep downloaded images in a temp dir."""
    monkeypatch.setattr(settings, "CRAWL_PAGE_DELAY_SECONDS", 0.0)
    monkeypatch.setattr(settings, "SCRAPE_ITEM_DELAY_SECONDS", 0.0)
    monkeypatch.setattr(settings, "BULK_PAUSE_SECONDS", 0.0)
    monkeypatch.setattr(settings, "IMAGE_DIR", str(tmp_path / "images"))


@pytest_asyncio.fixture
async def test_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_site() -> FakeSite:
    return FakeSite()


@pytest_asyncio.fixture
async def sample_external_category(test_db: AsyncSession) -> ExternalCategory:
    """Create a sample external category for testing."""
    category = ExternalCategory(title="设计-平面设计", url=CATEGORY_URL, sort_order=0, is_invalid=False)
    test_db.add(category)
    await test_db.commit()
    await test_db.refresh(category)
    return category


@pytest_asyncio.fixture
async def sample_resource(test_db: AsyncSession, sample_external_category: ExternalCategory) -> ExternalResource:
    """Create a sample external resource for testing."""
    resource = ExternalResource(
        url=f"{SITE}/12345.html",
        category_id=sample_external_category.id,
        chinese_title="平面设计大师课",
        english_title="Graphic Design Masterclass",
        coin_price="15",
        preview_url="",
    )
    test_db.add(resource)
    await test_db.commit()
    await test_db.refresh(resource)
    return resource


@pytest_asyncio.fixture
async def sample_internal_categories(test_db: AsyncSession) -> List[Category]:
    """Create internal catalog categories for testing."""
    categories = [
        Category(name="编程开发", sort_order=1),
        Category(name="平面设计", sort_order=2),
        Category(name="创意设计", sort_order=3),
    ]
    test_db.add_all(categories)
    await test_db.commit()
    for category in categories:
        await test_db.refresh(category)
    return categories


@pytest_asyncio.fixture
async def sample_author(test_db: AsyncSession) -> Author:
    author = Author(name="Catalog Team")
    test_db.add(author)
    await test_db.commit()
    await test_db.refresh(author)
    return author


@pytest.fixture
def page_url() -> Callable[[int], str]:
    return lambda page: SourceSiteAdapter.build_page_url(CATEGORY_URL, page)
