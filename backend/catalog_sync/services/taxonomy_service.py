"""Import external categories into the internal taxonomy."""

from typing import Dict

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.core.exceptions import PersistenceError
from catalog_sync.models.category import Category
from catalog_sync.services.resource_service import ResourceService

logger = structlog.get_logger(__name__)


class TaxonomyService:
    """Keeps internal categories in step with the valid external ones."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.resources = ResourceService(db)
        self.logger = logger.bind(service="taxonomy_service")

    async def import_external_categories(self) -> Dict[str, int]:
        """Create or update an internal category per valid external category.

        Categories are matched by name; an existing one only gets its sort
        order refreshed.

        Returns:
            Dict with ``created`` and ``updated`` counts
        """
        external_categories = await self.resources.list_valid_categories()

        result = await self.db.execute(select(Category))
        by_name = {category.name: category for category in result.scalars().all()}

        stats = {"created": 0, "updated": 0}
        for external in external_categories:
            category = by_name.get(external.title)
            if category is None:
                category = Category(name=external.title, sort_order=external.sort_order)
                self.db.add(category)
                by_name[external.title] = category
                stats["created"] += 1
            else:
                category.sort_order = external.sort_order
                stats["updated"] += 1

        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError("import_categories", str(e)) from e

        self.logger.info("external_categories_imported", **stats)
        return stats
