"""Store operations for external categories and resources.

Writes are flushed, not committed; the caller owns the transaction (the
request dependency, a job worker or the CLI).
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.core.exceptions import NotFoundError, PersistenceError
from catalog_sync.models.external_category import ExternalCategory
from catalog_sync.models.external_resource import ExternalResource
from catalog_sync.scrapers.base import ResourceStub

logger = structlog.get_logger(__name__)


class ResourceService:
    """Lookups and partial updates for scraped records."""

    def __init__(self, db: AsyncSession):
        """Initialize resource service.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="resource_service")

    async def _flush(self, operation: str) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error("flush_failed", operation=operation, error=str(e))
            raise PersistenceError(operation, str(e)) from e

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def get_category(self, category_id: int) -> Optional[ExternalCategory]:
        return await self.db.get(ExternalCategory, category_id)

    async def get_category_or_raise(self, category_id: int) -> ExternalCategory:
        category = await self.get_category(category_id)
        if category is None:
            raise NotFoundError("ExternalCategory", category_id)
        return category

    async def get_category_by_url(self, url: str) -> Optional[ExternalCategory]:
        result = await self.db.execute(select(ExternalCategory).where(ExternalCategory.url == url))
        return result.scalar_one_or_none()

    async def get_first_valid_category(self) -> Optional[ExternalCategory]:
        result = await self.db.execute(
            select(ExternalCategory)
            .where(ExternalCategory.is_invalid.is_(False))
            .order_by(ExternalCategory.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_valid_categories(self) -> List[ExternalCategory]:
        result = await self.db.execute(
            select(ExternalCategory)
            .where(ExternalCategory.is_invalid.is_(False))
            .order_by(ExternalCategory.sort_order, ExternalCategory.id)
        )
        return list(result.scalars().all())

    async def upsert_category(self, title: str, url: str, sort_order: int = 0) -> Tuple[ExternalCategory, bool]:
        """Create a category or refresh the title of an existing one.

        The invalid flag and sort order of an existing category are kept.

        Returns:
            Tuple of (category, created)
        """
        category = await self.get_category_by_url(url)
        if category:
            if category.title != title:
                category.title = title
                await self._flush("update_category")
            return category, False

        category = ExternalCategory(title=title, url=url, sort_order=sort_order, is_invalid=False)
        self.db.add(category)
        await self._flush("create_category")
        return category, True

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def get(self, resource_id: int) -> Optional[ExternalResource]:
        return await self.db.get(ExternalResource, resource_id)

    async def get_or_raise(self, resource_id: int) -> ExternalResource:
        resource = await self.get(resource_id)
        if resource is None:
            raise NotFoundError("ExternalResource", resource_id)
        return resource

    async def get_by_url(self, url: str) -> Optional[ExternalResource]:
        result = await self.db.execute(select(ExternalResource).where(ExternalResource.url == url))
        return result.scalar_one_or_none()

    async def list_ids_by_category(self, category_id: int) -> List[int]:
        result = await self.db.execute(
            select(ExternalResource.id)
            .where(ExternalResource.category_id == category_id)
            .order_by(ExternalResource.id)
        )
        return list(result.scalars().all())

    async def create_from_stub(self, category_id: int, stub: ResourceStub) -> ExternalResource:
        """Create a resource first seen on a listing page."""
        resource = ExternalResource(
            url=stub.url,
            category_id=category_id,
            chinese_title=stub.chinese_title,
            english_title=stub.english_title,
            coin_price="0",
            preview_url="",
            details_html=None,
            course_html=None,
        )
        self.db.add(resource)
        await self._flush("create_resource")
        self.logger.info("resource_created", resource_id=resource.id, url=stub.url)
        return resource

    async def upsert_stub(self, category_id: int, stub: ResourceStub) -> Tuple[ExternalResource, bool]:
        """Create a resource by URL or refresh only its titles.

        Returns:
            Tuple of (resource, created)
        """
        resource = await self.get_by_url(stub.url)
        if resource is None:
            return await self.create_from_stub(category_id, stub), True

        # Titles mirror the current listing, a dropped English part included
        if (resource.chinese_title, resource.english_title) != (stub.chinese_title, stub.english_title):
            resource.chinese_title = stub.chinese_title
            resource.english_title = stub.english_title
            await self._flush("update_resource")
        return resource, False

    async def update_partial(self, resource: ExternalResource, patch: Dict[str, Any]) -> ExternalResource:
        """Apply a partial update; None values are ignored, never written."""
        changed = False
        for field, value in patch.items():
            if value is None:
                continue
            if getattr(resource, field) != value:
                setattr(resource, field, value)
                changed = True

        if changed:
            await self._flush("update_resource")
        return resource
