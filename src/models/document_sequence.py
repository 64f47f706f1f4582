"""DocumentSequence model: per-prefix, per-year counters for business numbers."""

from __future__ import annotations

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class DocumentSequence(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "document_sequences"

    prefix: Mapped[str] = mapped_column(String(10), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    __table_args__ = (
        UniqueConstraint("prefix", "year", name="uq_document_sequences_prefix_year"),
    )

    def __repr__(self) -> str:
        return f"<DocumentSequence {self.prefix}-{self.year} last={self.last_value}>"
