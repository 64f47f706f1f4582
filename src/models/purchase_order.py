"""PurchaseOrder model: vendor procurement record for one or more gift orders."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import PurchaseOrderStatus

if TYPE_CHECKING:
    from src.models.purchase_order_item import PurchaseOrderItem
    from src.models.vendor import Vendor


class PurchaseOrder(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "purchase_orders"

    po_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=False,
    )
    bank_order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bank_orders.id", ondelete="SET NULL"),
    )
    bip_order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bip_orders.id", ondelete="SET NULL"),
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, server_default="0"
    )
    status: Mapped[PurchaseOrderStatus] = mapped_column(
        nullable=False, server_default="ACTIVE"
    )

    # Merge provenance
    merged_from: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default="[]"
    )
    merged_into_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("purchase_orders.id", ondelete="SET NULL"),
    )

    cancel_reason: Mapped[str | None] = mapped_column(Text)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )

    # Relationships
    vendor: Mapped[Vendor] = relationship("Vendor", lazy="noload")
    items: Mapped[list[PurchaseOrderItem]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.line_number",
    )

    __table_args__ = (
        Index("ix_purchase_orders_vendor_id", "vendor_id"),
        Index("ix_purchase_orders_status", "status"),
        Index("ix_purchase_orders_bank_order_id", "bank_order_id", postgresql_where="bank_order_id IS NOT NULL"),
        Index("ix_purchase_orders_bip_order_id", "bip_order_id", postgresql_where="bip_order_id IS NOT NULL"),
    )

    @property
    def is_locked(self) -> bool:
        """Merged and cancelled POs accept no further edits."""
        return self.status in (PurchaseOrderStatus.MERGED, PurchaseOrderStatus.CANCELLED)

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} number={self.po_number} status={self.status}>"
