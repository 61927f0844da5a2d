"""Bulk pipeline operations runnable as queued jobs.

Every handler takes an open session and the job params and returns a
JSON-serializable summary that is stored as the job result.
"""

from typing import Any, Dict

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.scrapers.source_site import SourceSiteAdapter
from catalog_sync.services.crawler_service import CrawlerService
from catalog_sync.services.detail_service import DetailService
from catalog_sync.services.publisher_service import PublisherService
from catalog_sync.services.resource_service import ResourceService

logger = structlog.get_logger(__name__)

JOB_SWEEP_FIRST_CATEGORY = "sweep_first_category"
JOB_SCRAPE_CATEGORY = "scrape_category"
JOB_RESCRAPE_RESOURCES = "rescrape_resources"
JOB_PUBLISH_CATEGORY = "publish_category"


async def sweep_first_category(db: AsyncSession, params: Dict[str, Any]) -> Dict[str, Any]:
    """Crawl the first valid category, then scrape each of its resources."""
    category = await ResourceService(db).get_first_valid_category()
    if category is None:
        logger.warning("sweep_no_valid_category")
        return {"category_id": None, "message": "No valid category to sweep"}

    category_id = category.id
    async with SourceSiteAdapter() as adapter:
        crawl = await CrawlerService(db, adapter=adapter).crawl_category(category_id)
        await db.commit()
        scrape = await DetailService(db, adapter=adapter).scrape_category(category_id)

    return {
        "category_id": category_id,
        "crawl": {
            "pages_crawled": crawl.pages_crawled,
            "resources": len(crawl.resources),
            "created": crawl.created_count,
            "message": crawl.message,
        },
        "scrape": scrape.to_dict(),
    }


async def scrape_category(db: AsyncSession, params: Dict[str, Any]) -> Dict[str, Any]:
    async with SourceSiteAdapter() as adapter:
        result = await DetailService(db, adapter=adapter).scrape_category(
            int(params["category_id"]),
            concurrent=bool(params.get("concurrent", False)),
        )
    return result.to_dict()


async def rescrape_resources(db: AsyncSession, params: Dict[str, Any]) -> Dict[str, Any]:
    resource_ids = [int(rid) for rid in params.get("resource_ids", [])]
    async with SourceSiteAdapter() as adapter:
        result = await DetailService(db, adapter=adapter).rescrape_resources(resource_ids)
    return result.to_dict()


async def publish_category(db: AsyncSession, params: Dict[str, Any]) -> Dict[str, Any]:
    result = await PublisherService(db).publish_category(int(params["category_id"]))
    return result.to_dict()


DEFAULT_HANDLERS = {
    JOB_SWEEP_FIRST_CATEGORY: sweep_first_category,
    JOB_SCRAPE_CATEGORY: scrape_category,
    JOB_RESCRAPE_RESOURCES: rescrape_resources,
    JOB_PUBLISH_CATEGORY: publish_category,
}
