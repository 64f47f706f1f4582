"""DeliveryChallan model: printable proof-of-dispatch for one shipment.

Customer, product and courier fields are copied from the order and shipment
when the challan is generated so the document stays stable if the source
order is edited later.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import OrderKind, PrintStatus


class DeliveryChallan(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "delivery_challans"

    challan_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True
    )
    shipment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("shipments.id", ondelete="RESTRICT"),
        nullable=False,
    )
    bank_order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bank_orders.id", ondelete="RESTRICT"),
    )
    bip_order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bip_orders.id", ondelete="RESTRICT"),
    )

    # Customer
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_cnic: Mapped[str | None] = mapped_column(String(20))
    customer_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    customer_address: Mapped[str] = mapped_column(Text, nullable=False)
    customer_city: Mapped[str] = mapped_column(String(100), nullable=False)

    # Product
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_brand: Mapped[str | None] = mapped_column(String(100))
    product_color: Mapped[str | None] = mapped_column(String(50))
    item_code: Mapped[str | None] = mapped_column(String(100))
    product_serial_number: Mapped[str | None] = mapped_column(String(100))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    # Courier
    courier_name: Mapped[str] = mapped_column(String(100), nullable=False)
    tracking_number: Mapped[str] = mapped_column(String(100), nullable=False)
    consignment_number: Mapped[str | None] = mapped_column(String(100))

    # References and dates
    order_reference: Mapped[str | None] = mapped_column(String(100))
    po_number: Mapped[str | None] = mapped_column(String(50))
    challan_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    dispatch_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expected_delivery_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    remarks: Mapped[str | None] = mapped_column(Text)

    # Stored document
    pdf_url: Mapped[str | None] = mapped_column(String(1000))

    # Print tracking
    print_status: Mapped[PrintStatus] = mapped_column(
        nullable=False, server_default="NOT_PRINTED"
    )
    printed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    print_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0"
    )

    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )

    __table_args__ = (
        CheckConstraint(
            "(bank_order_id IS NULL) <> (bip_order_id IS NULL)",
            name="ck_delivery_challans_single_order",
        ),
        Index(
            "uq_delivery_challans_shipment_active",
            "shipment_id",
            unique=True,
            postgresql_where="is_deleted = false",
        ),
        Index("ix_delivery_challans_bank_order_id", "bank_order_id", postgresql_where="bank_order_id IS NOT NULL"),
        Index("ix_delivery_challans_bip_order_id", "bip_order_id", postgresql_where="bip_order_id IS NOT NULL"),
        Index("ix_delivery_challans_tracking_number", "tracking_number"),
    )

    @property
    def order_kind(self) -> OrderKind:
        return OrderKind.BANK if self.bank_order_id is not None else OrderKind.BIP

    @property
    def order_id(self) -> uuid.UUID | None:
        return self.bank_order_id or self.bip_order_id

    def __repr__(self) -> str:
        return (
            f"<DeliveryChallan id={self.id} number={self.challan_number} "
            f"prints={self.print_count}>"
        )
