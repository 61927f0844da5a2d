"""External resource model -- one course listing scraped from the source site."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_sync.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from catalog_sync.models.external_category import ExternalCategory


class ExternalResource(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Course listing as seen on the source site, before publishing.

    Created on the first crawl sighting of its URL, enriched by the detail
    scraper and the content normalizer. Never deleted automatically.
    """

    __tablename__ = "external_resources"

    # Identity
    url: Mapped[str] = mapped_column(String(2000), unique=True, index=True, nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("external_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Titles from the listing page
    chinese_title: Mapped[str] = mapped_column(String(500), nullable=False)
    english_title: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Raw HTML
    details_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Cleaned description fragment")
    course_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Raw course HTML for outline extraction")
    details_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Plain text of the entry content")

    # Normalized content
    normalized_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="AI-converted description prose")
    outline_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="AI-extracted outline JSON")

    # Metadata block of the detail page
    resource_category: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    popularity: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    publish_date: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_update: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    content_info: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    video_size: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Video dimensions")
    file_size: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    duration: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    language: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    subtitle: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, comment="Subtitle languages")
    coin_price: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, default="0")

    # Links and media
    preview_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    local_image_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cloud_disk_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True, comment="Access link")
    cloud_disk_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="Access code")

    # Publishing link
    linked_entry_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("catalog_entries.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    category: Mapped["ExternalCategory"] = relationship(back_populates="resources")

    def __repr__(self) -> str:
        return f"<ExternalResource(id={self.id}, url='{self.url}')>"
