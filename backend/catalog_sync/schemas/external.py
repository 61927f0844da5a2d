"""Schemas for scraped categories and resources."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ExternalCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    url: str
    sort_order: int
    is_invalid: bool


class ExternalResourceBrief(BaseModel):
    """Listing-level view of a resource."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    chinese_title: str
    english_title: Optional[str] = None
    category_id: int
    linked_entry_id: Optional[int] = None


class ExternalResourceResponse(ExternalResourceBrief):
    """Full view of a resource after detail scraping."""

    resource_category: Optional[str] = None
    popularity: Optional[str] = None
    publish_date: Optional[str] = None
    last_update: Optional[str] = None
    content_info: Optional[str] = None
    video_size: Optional[str] = None
    file_size: Optional[str] = None
    duration: Optional[str] = None
    language: Optional[str] = None
    subtitle: Optional[str] = None
    coin_price: Optional[str] = None
    preview_url: Optional[str] = None
    image_url: Optional[str] = None
    local_image_path: Optional[str] = None
    details_text: Optional[str] = None
    normalized_text: Optional[str] = None
    outline_json: Optional[str] = None


class CrawlResponse(BaseModel):
    pages_crawled: int
    created_count: int
    terminal_state: Optional[str] = None
    resources: List[ExternalResourceBrief] = []


class DiscoveryResponse(BaseModel):
    created: int
    updated: int
    categories: List[ExternalCategoryResponse] = []


class ScrapeResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    tags: List[str] = []
    resource: Optional[ExternalResourceResponse] = None


class NormalizedTextResponse(BaseModel):
    resource_id: int
    normalized_text: str


class TaxonomyImportResponse(BaseModel):
    created: int
    updated: int
