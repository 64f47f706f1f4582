"""Outbox reconciliation API: failed side effects awaiting an operator."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.modules.events.outbox_service import OutboxService
from src.modules.events.schemas import OutboxEventResponse

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/failed", response_model=list[OutboxEventResponse])
async def list_failed_events(
    event_type: str | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    events = await OutboxService(db).list_failed_events(event_type=event_type, limit=limit)
    return [OutboxEventResponse.model_validate(e) for e in events]


@router.post("/{event_id}/resolve", response_model=OutboxEventResponse)
async def resolve_failed_event(event_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    event = await OutboxService(db).resolve_failed_event(event_id)
    return OutboxEventResponse.model_validate(event)
