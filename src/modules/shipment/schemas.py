"""Pydantic v2 schemas for dispatch and shipment API endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import CourierType, ShipmentStatus

# ---------------------------------------------------------------------------
# Dispatch requests
# ---------------------------------------------------------------------------


class DispatchRequest(BaseModel):
    """Book an order with an API-integrated courier."""

    courier_type: CourierType
    product_description: str | None = Field(None, max_length=500)
    declared_value: Decimal | None = Field(None, ge=0)
    special_instructions: str | None = Field(None, max_length=1000)
    weight_kg: float | None = Field(None, gt=0)
    fragile: bool = False
    landmark: str | None = Field(None, max_length=255)
    length_cm: float | None = Field(None, gt=0)
    width_cm: float | None = Field(None, gt=0)
    height_cm: float | None = Field(None, gt=0)
    service_code: str | None = Field(None, max_length=10)


class ManualDispatchRequest(BaseModel):
    """Record a dispatch made outside any courier API."""

    courier_type: CourierType
    tracking_number: str = Field(..., min_length=1, max_length=100)
    consignment_number: str | None = Field(None, max_length=100)
    product_description: str | None = Field(None, max_length=500)
    remarks: str | None = Field(None, max_length=1000)


class ShipmentStatusUpdate(BaseModel):
    status: ShipmentStatus
    remarks: str | None = Field(None, max_length=1000)


class ShipmentCancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ShipmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    bank_order_id: uuid.UUID | None = None
    bip_order_id: uuid.UUID | None = None
    courier_id: uuid.UUID
    tracking_number: str
    consignment_number: str | None = None
    status: ShipmentStatus
    customer_name: str
    customer_phone: str
    customer_address: str
    customer_city: str
    product_description: str
    quantity: int
    declared_value: Decimal | None = None
    booking_date: datetime
    expected_delivery_date: datetime | None = None
    actual_delivery_date: datetime | None = None
    delivery_remarks: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ShipmentDetailResponse(ShipmentResponse):
    courier_api_response: dict | None = None


class ShipmentListResponse(BaseModel):
    items: list[ShipmentResponse]
    total: int
    limit: int
    offset: int


class TrackingResponse(BaseModel):
    shipment_id: uuid.UUID
    tracking_number: str
    success: bool
    status: str | None = None
    current_location: str | None = None
    last_update: datetime | None = None
    delivery_date: datetime | None = None
    remarks: str | None = None
    error: str | None = None
