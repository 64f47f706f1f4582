"""Pydantic v2 schemas for purchase order endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.enums import OrderKind, PurchaseOrderStatus

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PurchaseOrderItemInput(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    product_color: str | None = Field(None, max_length=50)
    serial_number: str | None = Field(None, max_length=100)


class PurchaseOrderCreate(BaseModel):
    vendor_id: uuid.UUID
    items: list[PurchaseOrderItemInput] = Field(..., min_length=1)
    bank_order_id: uuid.UUID | None = None
    bip_order_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def _single_order_reference(self) -> PurchaseOrderCreate:
        if self.bank_order_id and self.bip_order_id:
            raise ValueError("A purchase order references at most one order")
        return self


class BulkCreateRequest(BaseModel):
    vendor_id: uuid.UUID
    unit_price: Decimal = Field(..., ge=0)
    bank_order_ids: list[uuid.UUID] = Field(default_factory=list)
    bip_order_ids: list[uuid.UUID] = Field(default_factory=list)


class CombineRequest(BaseModel):
    po_ids: list[uuid.UUID] = Field(..., min_length=2)


class MergeRequest(CombineRequest):
    new_po_number: str | None = Field(None, min_length=1, max_length=50)


class PurchaseOrderItemUpdate(BaseModel):
    """Locate a line by product (and line number when a product repeats)."""

    product_id: uuid.UUID
    line_number: int | None = Field(None, ge=1)
    serial_number: str | None = Field(None, max_length=100)
    quantity: int | None = Field(None, gt=0)


class PurchaseOrderUpdate(BaseModel):
    items: list[PurchaseOrderItemUpdate] = Field(..., min_length=1)


class BulkUpdateEntry(PurchaseOrderUpdate):
    po_id: uuid.UUID


class BulkUpdateRequest(BaseModel):
    updates: list[BulkUpdateEntry] = Field(..., min_length=1)


class PurchaseOrderCancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PurchaseOrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    line_number: int
    product_id: uuid.UUID
    product_name: str
    bank_product_number: str | None = None
    product_color: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    bank_order_id: uuid.UUID | None = None
    bip_order_id: uuid.UUID | None = None
    source_po: str | None = None
    serial_number: str | None = None


class PurchaseOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    po_number: str
    vendor_id: uuid.UUID
    bank_order_id: uuid.UUID | None = None
    bip_order_id: uuid.UUID | None = None
    total_amount: Decimal
    status: PurchaseOrderStatus
    merged_from: list[str] = []
    merged_into_id: uuid.UUID | None = None
    cancel_reason: str | None = None
    cancelled_at: datetime | None = None
    items: list[PurchaseOrderItemResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PurchaseOrderListResponse(BaseModel):
    items: list[PurchaseOrderResponse]
    total: int
    limit: int
    offset: int


class CombinedItem(BaseModel):
    product_id: uuid.UUID
    product_name: str
    bank_product_number: str | None = None
    product_color: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    serial_number: str | None = None
    source_po: str
    bank_order_id: uuid.UUID | None = None
    bip_order_id: uuid.UUID | None = None


class RelatedOrders(BaseModel):
    bank_order_ids: list[uuid.UUID] = []
    bip_order_ids: list[uuid.UUID] = []


class CombinedPreviewResponse(BaseModel):
    po_numbers: list[str]
    vendor_id: uuid.UUID
    vendor_name: str
    items: list[CombinedItem]
    total_amount: Decimal
    related_orders: RelatedOrders
    combined_at: datetime
    original_po_count: int


class BulkCreateSuccess(BaseModel):
    order_kind: OrderKind
    order_id: uuid.UUID
    po_id: uuid.UUID
    po_number: str


class BulkCreateFailure(BaseModel):
    order_kind: OrderKind
    order_id: uuid.UUID
    error: str


class BulkCreateResponse(BaseModel):
    success_count: int
    failed_count: int
    successes: list[BulkCreateSuccess]
    failures: list[BulkCreateFailure]


class BulkUpdateSuccess(BaseModel):
    po_id: uuid.UUID
    po_number: str


class BulkUpdateFailure(BaseModel):
    po_id: uuid.UUID
    error: str


class BulkUpdateResponse(BaseModel):
    success_count: int
    failed_count: int
    successes: list[BulkUpdateSuccess]
    failures: list[BulkUpdateFailure]
