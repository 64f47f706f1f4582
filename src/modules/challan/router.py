"""Delivery challan API router."""

from __future__ import annotations

import io
import uuid

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.models.enums import OrderKind, PrintStatus
from src.modules.challan.constants import BULK_DOWNLOAD_FILENAME
from src.modules.challan.schemas import (
    BulkDownloadRequest,
    ChallanCreateRequest,
    ChallanListResponse,
    ChallanResponse,
    MarkPrintedRequest,
    MarkPrintedResponse,
)
from src.modules.challan.service import ChallanService

router = APIRouter(prefix="/delivery-challans", tags=["delivery-challans"])


def _pdf_response(pdf: bytes, filename: str, disposition: str = "attachment") -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(pdf),
        media_type="application/pdf",
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post("/bank-order/{order_id}", response_model=ChallanResponse, status_code=201)
async def create_for_bank_order(
    order_id: uuid.UUID,
    body: ChallanCreateRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    svc = ChallanService(db)
    challan = await svc.create_for_order(
        OrderKind.BANK,
        order_id,
        serial_override=body.product_serial_number if body else None,
        remarks=body.remarks if body else None,
    )
    return ChallanResponse.model_validate(challan)


@router.post("/bip-order/{order_id}", response_model=ChallanResponse, status_code=201)
async def create_for_bip_order(
    order_id: uuid.UUID,
    body: ChallanCreateRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    svc = ChallanService(db)
    challan = await svc.create_for_order(
        OrderKind.BIP,
        order_id,
        serial_override=body.product_serial_number if body else None,
        remarks=body.remarks if body else None,
    )
    return ChallanResponse.model_validate(challan)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


@router.get("/", response_model=ChallanListResponse)
async def list_challans(
    tracking_number: str | None = Query(None),
    customer_name: str | None = Query(None),
    print_status: PrintStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    svc = ChallanService(db)
    challans, total = await svc.list_challans(
        tracking_number=tracking_number,
        customer_name=customer_name,
        print_status=print_status,
        limit=limit,
        offset=offset,
    )
    return ChallanListResponse(
        items=[ChallanResponse.model_validate(c) for c in challans],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/bank-order/{order_id}", response_model=ChallanResponse)
async def get_for_bank_order(order_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    challan = await ChallanService(db).get_for_order(OrderKind.BANK, order_id)
    return ChallanResponse.model_validate(challan)


@router.get("/bip-order/{order_id}", response_model=ChallanResponse)
async def get_for_bip_order(order_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    challan = await ChallanService(db).get_for_order(OrderKind.BIP, order_id)
    return ChallanResponse.model_validate(challan)


@router.get("/{challan_id}", response_model=ChallanResponse)
async def get_challan(challan_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    challan = await ChallanService(db).get_challan(challan_id)
    return ChallanResponse.model_validate(challan)


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


@router.get("/{challan_id}/download")
async def download_challan(challan_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Stream the challan PDF and count it as printed."""
    challan, pdf = await ChallanService(db).download(challan_id)
    return _pdf_response(pdf, f"{challan.challan_number}.pdf")


@router.post("/{challan_id}/regenerate-pdf", response_model=ChallanResponse)
async def regenerate_pdf(challan_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    challan = await ChallanService(db).regenerate_pdf(challan_id)
    return ChallanResponse.model_validate(challan)


@router.post("/bulk-download")
async def bulk_download(body: BulkDownloadRequest, db: AsyncSession = Depends(get_db)):
    """Merge the selected challans into one PDF; each is counted as printed once."""
    pdf, _ = await ChallanService(db).bulk_download(
        challan_ids=body.challan_ids,
        bank_order_ids=body.bank_order_ids,
        bip_order_ids=body.bip_order_ids,
    )
    return _pdf_response(pdf, BULK_DOWNLOAD_FILENAME)


@router.post("/mark-printed", response_model=MarkPrintedResponse)
async def mark_printed(body: MarkPrintedRequest, db: AsyncSession = Depends(get_db)):
    updated = await ChallanService(db).mark_printed(body.challan_ids)
    return MarkPrintedResponse(updated=updated)
