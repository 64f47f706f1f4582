"""PurchaseOrderItem model: one product line within a purchase order."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from src.models.purchase_order import PurchaseOrder


class PurchaseOrderItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "purchase_order_items"

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    bank_product_number: Mapped[str | None] = mapped_column(String(100))
    product_color: Mapped[str | None] = mapped_column(String(50))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # Order this line was raised for
    bank_order_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    bip_order_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    # PO number this line came from when it was merged into another PO
    source_po: Mapped[str | None] = mapped_column(String(50))
    serial_number: Mapped[str | None] = mapped_column(String(100))

    # Relationships
    purchase_order: Mapped[PurchaseOrder] = relationship(
        "PurchaseOrder", back_populates="items", lazy="noload"
    )

    __table_args__ = (
        Index("ix_purchase_order_items_purchase_order_id", "purchase_order_id"),
        Index("ix_purchase_order_items_bank_order_id", "bank_order_id", postgresql_where="bank_order_id IS NOT NULL"),
        Index("ix_purchase_order_items_bip_order_id", "bip_order_id", postgresql_where="bip_order_id IS NOT NULL"),
    )

    @property
    def order_id(self) -> uuid.UUID | None:
        return self.bank_order_id or self.bip_order_id

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrderItem id={self.id} product={self.product_id} "
            f"qty={self.quantity} serial={self.serial_number}>"
        )
