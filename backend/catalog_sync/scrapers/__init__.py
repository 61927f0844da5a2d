"""Source site scraping: adapter, pagination and image storage."""

from .base import (
    BaseSourceAdapter,
    CategoryLink,
    FetchedPage,
    ResourceDetail,
    ResourceStub,
)
from .source_site import SourceSiteAdapter, split_listing_title
from .pagination import CategoryPager, PageResult, PageState
from .image_store import ImageStore


__all__ = [
    "BaseSourceAdapter",
    "CategoryLink",
    "FetchedPage",
    "ResourceDetail",
    "ResourceStub",
    "SourceSiteAdapter",
    "split_listing_title",
    "CategoryPager",
    "PageResult",
    "PageState",
    "ImageStore",
]
