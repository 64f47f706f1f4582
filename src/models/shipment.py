"""Shipment model: one courier booking for one bank or BIP order."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import OrderKind, ShipmentStatus


class Shipment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "shipments"

    # Exactly one of the two order references is set. An order has at most one
    # non-deleted shipment, cancelled ones included.
    bank_order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bank_orders.id", ondelete="RESTRICT"),
    )
    bip_order_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bip_orders.id", ondelete="RESTRICT"),
    )
    courier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("couriers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    tracking_number: Mapped[str] = mapped_column(String(100), nullable=False)
    consignment_number: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[ShipmentStatus] = mapped_column(
        nullable=False, server_default="BOOKED"
    )

    # Denormalized from the order at booking time
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    customer_address: Mapped[str] = mapped_column(Text, nullable=False)
    customer_city: Mapped[str] = mapped_column(String(100), nullable=False)
    product_description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    declared_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))
    weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(8, 2))
    special_instructions: Mapped[str | None] = mapped_column(Text)

    booking_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expected_delivery_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    actual_delivery_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    delivery_remarks: Mapped[str | None] = mapped_column(Text)
    courier_api_response: Mapped[dict] = mapped_column(
        JSONB, nullable=False, server_default="{}"
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )

    # Optimistic lock: cancellation and delivery updates race on this row
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            "(bank_order_id IS NULL) <> (bip_order_id IS NULL)",
            name="ck_shipments_single_order",
        ),
        Index(
            "uq_shipments_bank_order_active",
            "bank_order_id",
            unique=True,
            postgresql_where="bank_order_id IS NOT NULL AND is_deleted = false",
        ),
        Index(
            "uq_shipments_bip_order_active",
            "bip_order_id",
            unique=True,
            postgresql_where="bip_order_id IS NOT NULL AND is_deleted = false",
        ),
        Index("ix_shipments_tracking_number", "tracking_number"),
        Index("ix_shipments_status", "status"),
        Index("ix_shipments_courier_id", "courier_id"),
    )

    @property
    def order_kind(self) -> OrderKind:
        return OrderKind.BANK if self.bank_order_id is not None else OrderKind.BIP

    @property
    def order_id(self) -> uuid.UUID | None:
        return self.bank_order_id or self.bip_order_id

    def __repr__(self) -> str:
        return (
            f"<Shipment id={self.id} tracking={self.tracking_number} "
            f"status={self.status}>"
        )
