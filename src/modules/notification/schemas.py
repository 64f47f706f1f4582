"""Pydantic v2 schemas for order notification endpoints."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from src.models.enums import OrderKind, OrderStatus


class SendConfirmationsRequest(BaseModel):
    order_kind: OrderKind
    order_ids: list[uuid.UUID] = Field(..., min_length=1)


class ConfirmationResult(BaseModel):
    order_id: uuid.UUID
    success: bool
    error: str | None = None


class SendConfirmationsResponse(BaseModel):
    success_count: int
    failed_count: int
    results: list[ConfirmationResult]


class ConfirmationReply(BaseModel):
    order_kind: OrderKind
    order_id: uuid.UUID
    token: str = Field(..., min_length=1, max_length=255)
    confirmed: bool


class ConfirmationReplyResponse(BaseModel):
    success: bool
    message: str
    order_id: uuid.UUID
    status: OrderStatus
