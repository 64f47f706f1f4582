"""Pydantic v2 schemas for outbox reconciliation endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from src.models.enums import EventStatus


class OutboxEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    event_type: str
    aggregate_type: str
    aggregate_id: str
    payload: dict
    status: EventStatus
    retry_count: int
    max_retries: int
    last_error: str | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None
