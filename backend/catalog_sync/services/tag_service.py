"""Tag lookup and resource-tag linking."""

from typing import Iterable, List, Optional

import structlog
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.core.exceptions import PersistenceError
from catalog_sync.models.tag import Tag, ResourceTagLink

logger = structlog.get_logger(__name__)


class TagService:
    """Case-insensitive tag store.

    Tag names keep the casing they were first seen with; lookups compare
    lower-cased names so 'UI' and 'ui' resolve to the same tag.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="tag_service")

    async def get_by_name(self, name: str) -> Optional[Tag]:
        result = await self.db.execute(
            select(Tag).where(func.lower(Tag.name) == name.strip().lower())
        )
        return result.scalars().first()

    async def find_or_create(self, name: str) -> Tag:
        """Return the tag matching ``name`` case-insensitively, creating it if missing."""
        clean_name = name.strip()
        tag = await self.get_by_name(clean_name)
        if tag:
            return tag

        tag = Tag(name=clean_name)
        self.db.add(tag)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError("create_tag", str(e)) from e

        self.logger.info("tag_created", tag_id=tag.id, name=clean_name)
        return tag

    async def link(self, resource_id: int, tag_id: int) -> bool:
        """Link a tag to a resource unless the link already exists.

        Returns:
            True if a new link was created
        """
        existing = await self.db.execute(
            select(ResourceTagLink.id).where(
                ResourceTagLink.resource_id == resource_id,
                ResourceTagLink.tag_id == tag_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            return False

        self.db.add(ResourceTagLink(resource_id=resource_id, tag_id=tag_id))
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError("link_tag", str(e)) from e
        return True

    async def get_tag_names(self, resource_id: int) -> List[str]:
        """Names of the tags linked to a resource, in link order."""
        result = await self.db.execute(
            select(Tag.name)
            .join(ResourceTagLink, ResourceTagLink.tag_id == Tag.id)
            .where(ResourceTagLink.resource_id == resource_id)
            .order_by(ResourceTagLink.id)
        )
        return list(result.scalars().all())

    async def attach_tags(self, resource_id: int, names: Iterable[str]) -> int:
        """Find-or-create every tag and link it. Used for listing tags.

        Returns:
            Number of new links
        """
        created = 0
        for name in names:
            if not name or not name.strip():
                continue
            tag = await self.find_or_create(name)
            if await self.link(resource_id, tag.id):
                created += 1
        return created

    async def merge_tags(self, resource_id: int, names: Iterable[str]) -> List[str]:
        """Add tags not already linked to a resource (case-insensitive).

        Returns:
            The full list of tag names linked after the merge
        """
        linked = await self.get_tag_names(resource_id)
        seen = {n.lower() for n in linked}

        for name in names:
            clean_name = (name or "").strip()
            if not clean_name or clean_name.lower() in seen:
                continue
            tag = await self.find_or_create(clean_name)
            await self.link(resource_id, tag.id)
            seen.add(clean_name.lower())
            linked.append(tag.name)

        return linked
