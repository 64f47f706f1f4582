"""Order models: bank-sourced and BIP-sourced gift orders.

Both kinds share the columns the fulfillment core reads and writes through
``OrderMixin``; they differ only in the business reference and monetary
field each program carries.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import OrderKind, OrderStatus


class OrderMixin:
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    cnic: Mapped[str | None] = mapped_column(String(20))
    mobile: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)

    # Ordered product
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(100))
    gift_code: Mapped[str | None] = mapped_column(String(100))
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="SET NULL"),
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    po_number: Mapped[str | None] = mapped_column(String(50))
    order_date: Mapped[date | None] = mapped_column(Date)

    status: Mapped[OrderStatus] = mapped_column(
        nullable=False, server_default="PENDING"
    )
    status_history: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default="[]"
    )
    shipment_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    # WhatsApp order confirmation
    whatsapp_confirmation_token: Mapped[str | None] = mapped_column(String(255))
    whatsapp_confirmation_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    whatsapp_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )


class BankOrder(OrderMixin, UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "bank_orders"

    kind = OrderKind.BANK

    ref_no: Mapped[str] = mapped_column(String(100), nullable=False)
    redeemed_points: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))

    __table_args__ = (
        Index("ix_bank_orders_status", "status"),
        Index("ix_bank_orders_ref_no", "ref_no"),
        Index("ix_bank_orders_po_number", "po_number"),
    )

    @property
    def reference_number(self) -> str:
        return self.ref_no

    @property
    def order_value(self) -> Decimal | None:
        return self.redeemed_points

    @property
    def document_reference(self) -> str | None:
        return self.po_number or self.ref_no

    @property
    def color(self) -> str | None:
        return None

    def __repr__(self) -> str:
        return f"<BankOrder id={self.id} ref={self.ref_no} status={self.status}>"


class BipOrder(OrderMixin, UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "bip_orders"

    kind = OrderKind.BIP

    eforms: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))
    color: Mapped[str | None] = mapped_column(String(50))

    __table_args__ = (
        Index("ix_bip_orders_status", "status"),
        Index("ix_bip_orders_eforms", "eforms"),
        Index("ix_bip_orders_po_number", "po_number"),
    )

    @property
    def reference_number(self) -> str:
        return self.eforms

    @property
    def order_value(self) -> Decimal | None:
        return self.amount

    @property
    def document_reference(self) -> str | None:
        return self.eforms or self.po_number

    def __repr__(self) -> str:
        return f"<BipOrder id={self.id} eforms={self.eforms} status={self.status}>"


ORDER_MODELS: dict[OrderKind, type[BankOrder] | type[BipOrder]] = {
    OrderKind.BANK: BankOrder,
    OrderKind.BIP: BipOrder,
}
