"""Runtime key/value parameters (AI credentials and similar)."""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog_sync.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Parameter(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Operator-managed setting read at call time rather than at startup."""

    __tablename__ = "parameters"

    key: Mapped[str] = mapped_column(String(200), unique=True, index=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Parameter(key='{self.key}')>"
