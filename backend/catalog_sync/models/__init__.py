"""SQLAlchemy models for Catalog Sync.

All models are imported here so metadata.create_all (and Alembic) can discover them.
"""

from catalog_sync.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin
from catalog_sync.models.external_category import ExternalCategory
from catalog_sync.models.external_resource import ExternalResource
from catalog_sync.models.tag import Tag, ResourceTagLink
from catalog_sync.models.category import Category
from catalog_sync.models.author import Author
from catalog_sync.models.catalog_entry import CatalogEntry, STATUS_PUBLISHED, STATUS_UNPUBLISHED
from catalog_sync.models.parameter import Parameter
from catalog_sync.models.pipeline_job import PipelineJob

__all__ = [
    "Base",
    "IntegerPrimaryKeyMixin",
    "TimestampMixin",
    "ExternalCategory",
    "ExternalResource",
    "Tag",
    "ResourceTagLink",
    "Category",
    "Author",
    "CatalogEntry",
    "STATUS_PUBLISHED",
    "STATUS_UNPUBLISHED",
    "Parameter",
    "PipelineJob",
]
