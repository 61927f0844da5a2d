"""Tests for the HTTP surface: envelopes, status codes and queued jobs."""

import json

import httpx
import pytest_asyncio
from fastapi import Depends

from catalog_sync.core.exceptions import UpstreamFetchError
from catalog_sync.dependencies import get_db, get_job_queue, get_normalizer, get_source_adapter
from catalog_sync.jobs.queue import JobQueue
from catalog_sync.main import app
from catalog_sync.services.normalizer_service import NormalizerService

from conftest import DETAIL_HTML, NAV_HTML, SITE, StubCompletionClient, listing_html


@pytest_asyncio.fixture
async def job_queue(session_factory) -> JobQueue:
    return JobQueue(session_factory)


@pytest_asyncio.fixture
async def ai_stub() -> StubCompletionClient:
    return StubCompletionClient()


@pytest_asyncio.fixture
async def api_client(session_factory, fake_site, job_queue, ai_stub):
    """HTTP client against the app with test database, site and AI."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_source_adapter():
        yield fake_site.adapter()

    async def override_get_normalizer(db=Depends(get_db)):
        return NormalizerService(db, client=ai_stub)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_source_adapter] = override_get_source_adapter
    app.dependency_overrides[get_normalizer] = override_get_normalizer
    app.dependency_overrides[get_job_queue] = lambda: job_queue

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# SERVICE ENDPOINTS
# ============================================================================

class TestServiceEndpoints:

    async def test_root(self, api_client):
        response = await api_client.get("/")
        assert response.status_code == 200
        assert response.json()["health"] == "/api/v1/health"

    async def test_health_reports_stopped_worker(self, api_client):
        response = await api_client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "ok"
        assert body["job_worker"] == "stopped"
        assert body["status"] == "degraded"


# ============================================================================
# CATEGORY ENDPOINTS
# ============================================================================

class TestCategoryEndpoints:

    async def test_discover(self, api_client, fake_site):
        fake_site.routes[f"{SITE}/"] = NAV_HTML

        response = await api_client.post("/api/v1/pipeline/categories/discover", params={"url": f"{SITE}/"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["data"]["created"] == 3
        assert body["data"]["categories"][0]["title"] == "设计-平面设计"

    async def test_crawl(self, api_client, fake_site, page_url, sample_external_category):
        fake_site.routes[page_url(1)] = listing_html((f"{SITE}/1.html", "[PS] 课程一 | Course One"))

        response = await api_client.post(f"/api/v1/pipeline/categories/{sample_external_category.id}/crawl")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["created_count"] == 1
        assert data["terminal_state"] == "not_found"
        assert data["resources"][0]["english_title"] == "Course One"

    async def test_crawl_network_error_is_partial(self, api_client, fake_site, page_url, sample_external_category):
        fake_site.routes[page_url(1)] = (500, "error")

        response = await api_client.post(f"/api/v1/pipeline/categories/{sample_external_category.id}/crawl")

        assert response.status_code == 200
        assert response.json()["status"] == "partial"

    async def test_crawl_unknown_category(self, api_client):
        response = await api_client.post("/api/v1/pipeline/categories/999/crawl")

        assert response.status_code == 404
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["code"] == "not_found"

    async def test_import_categories(self, api_client, sample_external_category):
        response = await api_client.post("/api/v1/pipeline/categories/import")

        assert response.status_code == 200
        assert response.json()["data"] == {"created": 1, "updated": 0}

    async def test_publish_category_job(self, api_client, job_queue, sample_resource, sample_external_category):
        response = await api_client.post(f"/api/v1/pipeline/categories/{sample_external_category.id}/publish")

        assert response.status_code == 202
        job_id = response.json()["job_id"]

        pending = await api_client.get(f"/api/v1/pipeline/jobs/{job_id}")
        assert pending.json()["data"]["status"] == "pending"

        await job_queue.drain()

        done = await api_client.get(f"/api/v1/pipeline/jobs/{job_id}")
        data = done.json()["data"]
        assert data["status"] == "completed"
        assert data["result"]["published"] == 1

    async def test_publish_unknown_category_is_not_queued(self, api_client, job_queue):
        response = await api_client.post("/api/v1/pipeline/categories/999/publish")

        assert response.status_code == 404
        assert await job_queue.drain() == 0

    async def test_sweep_is_queued(self, api_client):
        response = await api_client.post("/api/v1/pipeline/categories/first/sweep")

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "accepted"
        assert body["kind"] == "sweep_first_category"

    async def test_unknown_job(self, api_client):
        response = await api_client.get("/api/v1/pipeline/jobs/missing")
        assert response.status_code == 404


# ============================================================================
# RESOURCE ENDPOINTS
# ============================================================================

class TestResourceEndpoints:

    async def test_scrape(self, api_client, fake_site, sample_resource):
        fake_site.routes[sample_resource.url] = DETAIL_HTML

        response = await api_client.post(f"/api/v1/pipeline/resources/{sample_resource.id}/scrape")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["success"] is True
        assert data["tags"] == ["Udemy", "设计"]
        assert data["resource"]["duration"] == "12小时30分钟"

    async def test_scrape_fetch_failure(self, api_client, sample_resource):
        response = await api_client.post(f"/api/v1/pipeline/resources/{sample_resource.id}/scrape")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "error"
        assert body["data"]["success"] is False

    async def test_outline(self, api_client, ai_stub, test_db, sample_resource):
        sample_resource.course_html = "<div>curriculum</div>"
        await test_db.commit()
        outline = {"sections": [{"title": "简介", "lectures": [{"title": "欢迎"}]}]}
        ai_stub.replies.extend([json.dumps(outline), json.dumps(outline, ensure_ascii=False)])

        response = await api_client.post(
            f"/api/v1/pipeline/resources/{sample_resource.id}/outline",
            params={"language": "中文"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["sections"][0]["lectures"][0]["title"] == "欢迎"

    async def test_outline_bad_reply(self, api_client, ai_stub, test_db, sample_resource):
        sample_resource.course_html = "<div>curriculum</div>"
        await test_db.commit()
        ai_stub.replies.append("no json here")

        response = await api_client.post(f"/api/v1/pipeline/resources/{sample_resource.id}/outline")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    async def test_normalize_without_html(self, api_client, sample_resource):
        response = await api_client.post(f"/api/v1/pipeline/resources/{sample_resource.id}/normalize")
        assert response.status_code == 400

    async def test_normalize(self, api_client, ai_stub, test_db, sample_resource):
        sample_resource.details_html = "<p>内容</p>"
        await test_db.commit()
        ai_stub.replies.append("内容")

        response = await api_client.post(f"/api/v1/pipeline/resources/{sample_resource.id}/normalize")

        assert response.status_code == 200
        assert response.json()["data"] == {"resource_id": sample_resource.id, "normalized_text": "内容"}

    async def test_normalize_upstream_failure(self, api_client, ai_stub, test_db, sample_resource):
        sample_resource.details_html = "<p>内容</p>"
        await test_db.commit()
        ai_stub.error = UpstreamFetchError("ai-completion", "timeout")

        response = await api_client.post(f"/api/v1/pipeline/resources/{sample_resource.id}/normalize")

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "upstream_error"

    async def test_publish_twice_returns_same_entry(self, api_client, sample_resource):
        url = f"/api/v1/pipeline/resources/{sample_resource.id}/publish"

        first = (await api_client.post(url)).json()["data"]
        second = (await api_client.post(url)).json()["data"]

        assert first["action"] == "created"
        assert second["action"] == "already_published"
        assert first["entry"]["id"] == second["entry"]["id"]
        assert first["entry"]["status"] == "unpublished"

    async def test_publish_unknown_resource(self, api_client):
        response = await api_client.post("/api/v1/pipeline/resources/999/publish")
        assert response.status_code == 404
