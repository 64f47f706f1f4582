"""Dispatch and shipment API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.models.enums import CourierType, OrderKind, ShipmentStatus
from src.modules.shipment.dispatch_service import DispatchService
from src.modules.shipment.schemas import (
    DispatchRequest,
    ManualDispatchRequest,
    ShipmentCancelRequest,
    ShipmentDetailResponse,
    ShipmentListResponse,
    ShipmentResponse,
    ShipmentStatusUpdate,
    TrackingResponse,
)
from src.modules.shipment.service import ShipmentService

router = APIRouter(prefix="/shipments", tags=["shipments"])


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


@router.post("/dispatch/bank-order/{order_id}", response_model=ShipmentResponse, status_code=201)
async def dispatch_bank_order(
    order_id: uuid.UUID,
    body: DispatchRequest,
    db: AsyncSession = Depends(get_db),
):
    """Book a bank order with an API-integrated courier."""
    shipment = await DispatchService(db).dispatch(OrderKind.BANK, order_id, body)
    return ShipmentResponse.model_validate(shipment)


@router.post("/dispatch/bip-order/{order_id}", response_model=ShipmentResponse, status_code=201)
async def dispatch_bip_order(
    order_id: uuid.UUID,
    body: DispatchRequest,
    db: AsyncSession = Depends(get_db),
):
    """Book a BIP order with an API-integrated courier."""
    shipment = await DispatchService(db).dispatch(OrderKind.BIP, order_id, body)
    return ShipmentResponse.model_validate(shipment)


@router.post(
    "/dispatch/bank-order/{order_id}/manual",
    response_model=ShipmentResponse,
    status_code=201,
)
async def dispatch_bank_order_manually(
    order_id: uuid.UUID,
    body: ManualDispatchRequest,
    db: AsyncSession = Depends(get_db),
):
    shipment = await DispatchService(db).dispatch_manually(OrderKind.BANK, order_id, body)
    return ShipmentResponse.model_validate(shipment)


@router.post(
    "/dispatch/bip-order/{order_id}/manual",
    response_model=ShipmentResponse,
    status_code=201,
)
async def dispatch_bip_order_manually(
    order_id: uuid.UUID,
    body: ManualDispatchRequest,
    db: AsyncSession = Depends(get_db),
):
    shipment = await DispatchService(db).dispatch_manually(OrderKind.BIP, order_id, body)
    return ShipmentResponse.model_validate(shipment)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


@router.get("/", response_model=ShipmentListResponse)
async def list_shipments(
    status: ShipmentStatus | None = Query(None),
    courier_type: CourierType | None = Query(None),
    city: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    svc = ShipmentService(db)
    shipments, total = await svc.list_shipments(
        status=status,
        courier_type=courier_type,
        city=city,
        limit=limit,
        offset=offset,
    )
    return ShipmentListResponse(
        items=[ShipmentResponse.model_validate(s) for s in shipments],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/tracking/{tracking_number}", response_model=ShipmentDetailResponse)
async def get_by_tracking_number(tracking_number: str, db: AsyncSession = Depends(get_db)):
    shipment = await ShipmentService(db).find_by_tracking_number(tracking_number)
    return ShipmentDetailResponse.model_validate(shipment)


@router.get("/{shipment_id}", response_model=ShipmentDetailResponse)
async def get_shipment(shipment_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    shipment = await ShipmentService(db).get_shipment(shipment_id)
    return ShipmentDetailResponse.model_validate(shipment)


@router.get("/{shipment_id}/track", response_model=TrackingResponse)
async def track_shipment(shipment_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Ask the courier for the parcel's latest status."""
    shipment, result = await DispatchService(db).track(shipment_id)
    return TrackingResponse(
        shipment_id=shipment.id,
        tracking_number=shipment.tracking_number,
        success=result.success,
        status=result.status,
        current_location=result.current_location,
        last_update=result.last_update,
        delivery_date=result.delivery_date,
        remarks=result.remarks,
        error=result.error,
    )


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


@router.patch("/{shipment_id}/status", response_model=ShipmentResponse)
async def update_status(
    shipment_id: uuid.UUID,
    body: ShipmentStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    shipment = await ShipmentService(db).update_status(shipment_id, body.status, body.remarks)
    return ShipmentResponse.model_validate(shipment)


@router.post("/{shipment_id}/cancel", response_model=ShipmentResponse)
async def cancel_shipment(
    shipment_id: uuid.UUID,
    body: ShipmentCancelRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Cancel with the courier and move the order back to processing."""
    shipment = await DispatchService(db).cancel(shipment_id, body.reason if body else None)
    return ShipmentResponse.model_validate(shipment)
