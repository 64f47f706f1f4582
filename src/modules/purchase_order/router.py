"""Purchase order API router."""

from __future__ import annotations

import io
import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.models.enums import PurchaseOrderStatus
from src.modules.purchase_order.schemas import (
    BulkCreateRequest,
    BulkCreateResponse,
    BulkUpdateRequest,
    BulkUpdateResponse,
    CombinedPreviewResponse,
    CombineRequest,
    MergeRequest,
    PurchaseOrderCancelRequest,
    PurchaseOrderCreate,
    PurchaseOrderListResponse,
    PurchaseOrderResponse,
    PurchaseOrderUpdate,
)
from src.modules.purchase_order.service import PurchaseOrderService

router = APIRouter(prefix="/purchase-orders", tags=["purchase-orders"])


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post("/", response_model=PurchaseOrderResponse, status_code=201)
async def create_purchase_order(body: PurchaseOrderCreate, db: AsyncSession = Depends(get_db)):
    svc = PurchaseOrderService(db)
    po = await svc.create_purchase_order(
        vendor_id=body.vendor_id,
        items=[item.model_dump() for item in body.items],
        bank_order_id=body.bank_order_id,
        bip_order_id=body.bip_order_id,
    )
    return PurchaseOrderResponse.model_validate(po)


@router.post("/bulk-create", response_model=BulkCreateResponse)
async def bulk_create(body: BulkCreateRequest, db: AsyncSession = Depends(get_db)):
    """Create one PO per order; every order must carry the same product."""
    svc = PurchaseOrderService(db)
    result = await svc.bulk_create_from_orders(
        vendor_id=body.vendor_id,
        unit_price=body.unit_price,
        bank_order_ids=body.bank_order_ids,
        bip_order_ids=body.bip_order_ids,
    )
    return BulkCreateResponse(**result)


# ---------------------------------------------------------------------------
# Combine / merge
# ---------------------------------------------------------------------------


@router.post("/combine-preview", response_model=CombinedPreviewResponse)
async def combine_preview(body: CombineRequest, db: AsyncSession = Depends(get_db)):
    preview = await PurchaseOrderService(db).combine_preview(body.po_ids)
    return CombinedPreviewResponse(**preview)


@router.post("/merge", response_model=PurchaseOrderResponse, status_code=201)
async def merge_purchase_orders(body: MergeRequest, db: AsyncSession = Depends(get_db)):
    po = await PurchaseOrderService(db).merge_permanently(body.po_ids, body.new_po_number)
    return PurchaseOrderResponse.model_validate(po)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


@router.get("/", response_model=PurchaseOrderListResponse)
async def list_purchase_orders(
    vendor_id: uuid.UUID | None = Query(None),
    status: PurchaseOrderStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    svc = PurchaseOrderService(db)
    pos, total = await svc.list_purchase_orders(
        vendor_id=vendor_id, status=status, limit=limit, offset=offset
    )
    return PurchaseOrderListResponse(
        items=[PurchaseOrderResponse.model_validate(po) for po in pos],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/combinable/{vendor_id}", response_model=list[PurchaseOrderResponse])
async def list_combinable(
    vendor_id: uuid.UUID,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    pos = await PurchaseOrderService(db).list_combinable(vendor_id, start_date, end_date)
    return [PurchaseOrderResponse.model_validate(po) for po in pos]


@router.get("/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(po_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    po = await PurchaseOrderService(db).get_purchase_order(po_id)
    return PurchaseOrderResponse.model_validate(po)


@router.get("/{po_id}/download")
async def download_purchase_order(po_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    po, pdf = await PurchaseOrderService(db).download_pdf(po_id)
    return StreamingResponse(
        io.BytesIO(pdf),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{po.po_number}.pdf"'},
    )


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


@router.patch("/bulk-update", response_model=BulkUpdateResponse)
async def bulk_update(body: BulkUpdateRequest, db: AsyncSession = Depends(get_db)):
    result = await PurchaseOrderService(db).bulk_update(
        [{"po_id": entry.po_id, "items": [i.model_dump() for i in entry.items]} for entry in body.updates]
    )
    return BulkUpdateResponse(**result)


@router.patch("/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    po_id: uuid.UUID,
    body: PurchaseOrderUpdate,
    db: AsyncSession = Depends(get_db),
):
    svc = PurchaseOrderService(db)
    po = await svc.update_purchase_order(po_id, [item.model_dump() for item in body.items])
    return PurchaseOrderResponse.model_validate(po)


@router.post("/{po_id}/cancel", response_model=PurchaseOrderResponse)
async def cancel_purchase_order(
    po_id: uuid.UUID,
    body: PurchaseOrderCancelRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    po = await PurchaseOrderService(db).cancel_purchase_order(po_id, body.reason if body else None)
    return PurchaseOrderResponse.model_validate(po)


@router.delete("/{po_id}", status_code=204)
async def remove_purchase_order(po_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await PurchaseOrderService(db).remove_purchase_order(po_id)
