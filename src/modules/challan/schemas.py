"""Pydantic v2 schemas for delivery challan endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.enums import PrintStatus


class ChallanCreateRequest(BaseModel):
    product_serial_number: str | None = Field(None, max_length=100)
    remarks: str | None = Field(None, max_length=1000)


class BulkDownloadRequest(BaseModel):
    challan_ids: list[uuid.UUID] = Field(default_factory=list)
    bank_order_ids: list[uuid.UUID] = Field(default_factory=list)
    bip_order_ids: list[uuid.UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_selection(self) -> BulkDownloadRequest:
        if not (self.challan_ids or self.bank_order_ids or self.bip_order_ids):
            raise ValueError("Provide at least one challan, bank order or BIP order id")
        return self


class MarkPrintedRequest(BaseModel):
    challan_ids: list[uuid.UUID] = Field(..., min_length=1)


class MarkPrintedResponse(BaseModel):
    updated: int


class ChallanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    challan_number: str
    shipment_id: uuid.UUID
    bank_order_id: uuid.UUID | None = None
    bip_order_id: uuid.UUID | None = None
    customer_name: str
    customer_cnic: str | None = None
    customer_phone: str
    customer_address: str
    customer_city: str
    product_name: str
    product_brand: str | None = None
    product_color: str | None = None
    item_code: str | None = None
    product_serial_number: str | None = None
    quantity: int
    courier_name: str
    tracking_number: str
    consignment_number: str | None = None
    order_reference: str | None = None
    po_number: str | None = None
    challan_date: datetime
    dispatch_date: datetime
    expected_delivery_date: datetime | None = None
    remarks: str | None = None
    pdf_url: str | None = None
    print_status: PrintStatus
    printed_at: datetime | None = None
    print_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChallanListResponse(BaseModel):
    items: list[ChallanResponse]
    total: int
    limit: int
    offset: int
