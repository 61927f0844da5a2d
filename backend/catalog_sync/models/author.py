"""Author model (owned by the catalog admin; read-only here)."""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog_sync.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Author(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Author credited on catalog entries."""

    __tablename__ = "authors"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Author(id={self.id}, name='{self.name}')>"
