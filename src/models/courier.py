"""Courier model: configured courier companies and their API credentials."""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import CourierType


class Courier(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "couriers"

    courier_name: Mapped[str] = mapped_column(String(100), nullable=False)
    courier_type: Mapped[CourierType] = mapped_column(nullable=False)
    api_url: Mapped[str | None] = mapped_column(String(500))
    api_key: Mapped[str | None] = mapped_column(String(255))
    api_secret: Mapped[str | None] = mapped_column(String(255))
    contact_phone: Mapped[str | None] = mapped_column(String(20))
    contact_email: Mapped[str | None] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="true"
    )
    is_manual_dispatch: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )

    __table_args__ = (
        Index("ix_couriers_courier_type", "courier_type"),
    )

    def __repr__(self) -> str:
        return f"<Courier id={self.id} type={self.courier_type} name={self.courier_name}>"
