"""Tag models for external resources."""

from datetime import datetime

from sqlalchemy import String, ForeignKey, DateTime, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from catalog_sync.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Tag(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Free-form label such as 'udemy'. Names are compared case-insensitively."""

    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(200), unique=True, index=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"


class ResourceTagLink(IntegerPrimaryKeyMixin, Base):
    """Many-to-many link between external resources and tags."""

    __tablename__ = "resource_tags"

    resource_id: Mapped[int] = mapped_column(
        ForeignKey("external_resources.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tag_id: Mapped[int] = mapped_column(
        ForeignKey("tags.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("resource_id", "tag_id", name="uq_resource_tag"),
    )

    def __repr__(self) -> str:
        return f"<ResourceTagLink(resource_id={self.resource_id}, tag_id={self.tag_id})>"
