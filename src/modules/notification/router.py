"""Order notification API router: WhatsApp confirmation requests and replies."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.modules.notification.schemas import (
    ConfirmationReply,
    ConfirmationReplyResponse,
    SendConfirmationsRequest,
    SendConfirmationsResponse,
)
from src.modules.notification.service import NotificationService

router = APIRouter(prefix="/order-notifications", tags=["order-notifications"])


@router.post("/confirmations", response_model=SendConfirmationsResponse)
async def send_confirmations(body: SendConfirmationsRequest, db: AsyncSession = Depends(get_db)):
    """Send WhatsApp confirmation requests; failures are reported per order."""
    svc = NotificationService(db)
    try:
        result = await svc.send_confirmations(body.order_kind, body.order_ids)
    finally:
        await svc.gateway.close()
    return SendConfirmationsResponse(**result)


@router.post("/confirmations/reply", response_model=ConfirmationReplyResponse)
async def process_confirmation(body: ConfirmationReply, db: AsyncSession = Depends(get_db)):
    svc = NotificationService(db)
    result = await svc.process_confirmation(
        body.order_kind, body.order_id, body.token, body.confirmed
    )
    return ConfirmationReplyResponse(**result)
