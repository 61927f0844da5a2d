"""Publishing external resources into the internal catalog.

Publishing is idempotent per resource: the first publish creates (or
reconciles) a CatalogEntry and stores its id on the resource; every later
publish goes back to that same entry and only fills fields that are still
empty there.
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.config import settings
from catalog_sync.core.exceptions import CatalogSyncException, PersistenceError
from catalog_sync.models.author import Author
from catalog_sync.models.catalog_entry import CatalogEntry, STATUS_UNPUBLISHED
from catalog_sync.models.category import Category
from catalog_sync.models.external_resource import ExternalResource
from catalog_sync.scrapers.utils.units import parse_duration_minutes, parse_size_gb
from catalog_sync.services.category_matcher import match_category_with_tier
from catalog_sync.services.normalizer_service import NormalizerService
from catalog_sync.services.resource_service import ResourceService

logger = structlog.get_logger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_ALREADY_PUBLISHED = "already_published"
ACTION_RECONCILED = "reconciled"

# CatalogEntry field <- ExternalResource field, filled on linked entries only when empty
LINKED_FILL_FIELDS = (
    ("resource_url", "cloud_disk_url"),
    ("resource_code", "cloud_disk_code"),
    ("local_image_path", "local_image_path"),
)


@dataclass
class PublishOptions:
    """Fallbacks used while publishing."""

    default_author_id: int
    default_category_keywords: Tuple[str, ...]
    source_type: str

    @classmethod
    def from_settings(cls) -> "PublishOptions":
        return cls(
            default_author_id=settings.DEFAULT_AUTHOR_ID,
            default_category_keywords=settings.get_default_category_keywords(),
            source_type=settings.SOURCE_TYPE,
        )


@dataclass
class PublishOutcome:
    success: bool
    message: str
    entry: Optional[CatalogEntry] = None
    action: Optional[str] = None


@dataclass
class PublishBatchResult:
    total: int = 0
    published: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[Dict[str, Union[int, str]]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "published": self.published,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": self.errors,
        }


def parse_price(coin_price: Optional[str]) -> Decimal:
    """Coin price text ("15") to a Decimal, 0 when missing or malformed."""
    if not coin_price:
        return Decimal("0")
    try:
        return Decimal(coin_price.strip())
    except InvalidOperation:
        return Decimal("0")


class PublisherService:
    """Service for promoting external resources to catalog entries."""

    def __init__(
        self,
        db: AsyncSession,
        normalizer: Optional[NormalizerService] = None,
        options: Optional[PublishOptions] = None,
    ):
        """Initialize publisher service.

        Args:
            db: Async database session
            normalizer: Used to convert description HTML that was never
                normalized; built on the same session when omitted
            options: Publishing fallbacks, read from settings when omitted
        """
        self.db = db
        self.normalizer = normalizer or NormalizerService(db)
        self.options = options or PublishOptions.from_settings()
        self.resources = ResourceService(db)
        self.logger = logger.bind(service="publisher_service")

    async def _flush(self, operation: str) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(operation, str(e)) from e

    async def publish_resource(
        self,
        resource_id: int,
        options: Optional[PublishOptions] = None,
    ) -> PublishOutcome:
        """Publish one resource to the catalog.

        Args:
            resource_id: ExternalResource id
            options: Per-call override of the service options

        Returns:
            PublishOutcome with the entry and what was done to it

        Raises:
            NotFoundError: If the resource does not exist
            PersistenceError: If the entry or the link cannot be written
        """
        opts = options or self.options
        resource = await self.resources.get_or_raise(resource_id)

        # Already linked: never create a second entry
        if resource.linked_entry_id is not None:
            entry = await self.db.get(CatalogEntry, resource.linked_entry_id)
            if entry is not None:
                return await self._refresh_linked_entry(resource, entry)
            self.logger.warning(
                "linked_entry_missing",
                resource_id=resource_id,
                entry_id=resource.linked_entry_id,
            )

        # Reconcile with an entry created before the link existed
        existing = await self._find_by_source(opts.source_type, resource.url)

        category_id = await self._resolve_category(resource, opts)
        author_id = await self._resolve_author(opts)
        description = await self._resolve_description(resource)

        payload = self._build_payload(resource, opts, category_id, author_id, description)

        if existing is not None:
            for key, value in payload.items():
                setattr(existing, key, value)
            entry = existing
            action = ACTION_RECONCILED
        else:
            entry = CatalogEntry(**payload)
            self.db.add(entry)
            action = ACTION_CREATED
        await self._flush("upsert_catalog_entry")

        resource.linked_entry_id = entry.id
        await self._flush("link_catalog_entry")

        self.logger.info(
            "resource_published",
            resource_id=resource_id,
            entry_id=entry.id,
            action=action,
            category_id=category_id,
        )
        message = "Catalog entry created" if action == ACTION_CREATED else "Existing catalog entry updated"
        return PublishOutcome(success=True, message=message, entry=entry, action=action)

    async def publish_category(
        self,
        category_id: int,
        options: Optional[PublishOptions] = None,
    ) -> PublishBatchResult:
        """Publish every unlinked resource of a category.

        Resources are read page by page (PUBLISH_PAGE_SIZE). Each one is
        committed on its own so a failure only loses that item.

        Raises:
            NotFoundError: If the category does not exist
        """
        await self.resources.get_category_or_raise(category_id)
        result = PublishBatchResult()
        page_size = settings.PUBLISH_PAGE_SIZE
        offset = 0
        processed = 0

        self.logger.info("category_publish_started", category_id=category_id)

        while True:
            rows = await self._page_resource_links(category_id, offset, page_size)
            if not rows:
                break
            offset += len(rows)

            for resource_id, linked_entry_id in rows:
                result.total += 1
                if linked_entry_id is not None:
                    result.skipped += 1
                    continue

                try:
                    await self.publish_resource(resource_id, options)
                    await self.db.commit()
                    result.published += 1
                except Exception as e:
                    await self.db.rollback()
                    self.logger.error("resource_publish_error", resource_id=resource_id, error=str(e), exc_info=True)
                    result.failed += 1
                    result.errors.append({"resource_id": resource_id, "error": str(e)})

                processed += 1
                if processed % settings.BULK_PAUSE_EVERY == 0:
                    await asyncio.sleep(settings.BULK_PAUSE_SECONDS)

            if len(rows) < page_size:
                break

        self.logger.info("category_publish_finished", category_id=category_id, **result.to_dict())
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _refresh_linked_entry(self, resource: ExternalResource, entry: CatalogEntry) -> PublishOutcome:
        patch = {}
        for entry_field, resource_field in LINKED_FILL_FIELDS:
            value = getattr(resource, resource_field)
            if value and not getattr(entry, entry_field):
                patch[entry_field] = value

        if not patch:
            return PublishOutcome(
                success=True,
                message="Resource already published",
                entry=entry,
                action=ACTION_ALREADY_PUBLISHED,
            )

        for key, value in patch.items():
            setattr(entry, key, value)
        await self._flush("update_linked_entry")

        self.logger.info("linked_entry_updated", resource_id=resource.id, entry_id=entry.id, fields=sorted(patch))
        return PublishOutcome(
            success=True,
            message=f"Linked catalog entry updated ({', '.join(sorted(patch))})",
            entry=entry,
            action=ACTION_UPDATED,
        )

    async def _find_by_source(self, source_type: str, source_url: str) -> Optional[CatalogEntry]:
        result = await self.db.execute(
            select(CatalogEntry).where(
                CatalogEntry.source_type == source_type,
                CatalogEntry.source_url == source_url,
            )
        )
        return result.scalars().first()

    async def _resolve_category(self, resource: ExternalResource, opts: PublishOptions) -> Optional[int]:
        external = await self.resources.get_category(resource.category_id)
        if external is None:
            return None

        result = await self.db.execute(select(Category).order_by(Category.id))
        categories = list(result.scalars().all())

        category_id, tier = match_category_with_tier(external.title, categories, opts.default_category_keywords)
        self.logger.debug("category_matched", external_title=external.title, category_id=category_id, tier=tier)
        return category_id

    async def _resolve_author(self, opts: PublishOptions) -> int:
        result = await self.db.execute(select(Author.id).order_by(Author.id).limit(1))
        author_id = result.scalar_one_or_none()
        return author_id if author_id is not None else opts.default_author_id

    async def _resolve_description(self, resource: ExternalResource) -> str:
        """Normalized text, converting it first when only HTML exists.

        A failed conversion falls back to the raw HTML.
        """
        if resource.details_html and not resource.normalized_text:
            try:
                text = await self.normalizer.html_to_text(resource.details_html)
            except CatalogSyncException as e:
                self.logger.warning("description_conversion_failed", resource_id=resource.id, error=e.message)
                text = ""
            if text:
                await self.resources.update_partial(resource, {"normalized_text": text})

        return resource.normalized_text or resource.details_html or ""

    @staticmethod
    def _build_payload(
        resource: ExternalResource,
        opts: PublishOptions,
        category_id: Optional[int],
        author_id: int,
        description: str,
    ) -> Dict[str, Any]:
        return {
            "title": resource.chinese_title,
            "subtitle": resource.english_title or "",
            "cover_image": resource.image_url or "",
            "local_image_path": resource.local_image_path,
            "category_id": category_id,
            "author_id": author_id,
            "price": parse_price(resource.coin_price),
            "duration_minutes": parse_duration_minutes(resource.duration),
            "size_gb": parse_size_gb(resource.file_size),
            "language": resource.language or "",
            "subtitle_languages": resource.subtitle or "",
            "resolution": resource.video_size or "",
            "description": description,
            "contents": resource.outline_json or "",
            "resource_url": resource.cloud_disk_url,
            "resource_code": resource.cloud_disk_code,
            "source_type": opts.source_type,
            "source_url": resource.url,
            "status": STATUS_UNPUBLISHED,
            "is_free": False,
        }

    async def _page_resource_links(self, category_id: int, offset: int, limit: int) -> List[Tuple[int, Optional[int]]]:
        result = await self.db.execute(
            select(ExternalResource.id, ExternalResource.linked_entry_id)
            .where(ExternalResource.category_id == category_id)
            .order_by(ExternalResource.id)
            .offset(offset)
            .limit(limit)
        )
        return [(row[0], row[1]) for row in result.all()]
