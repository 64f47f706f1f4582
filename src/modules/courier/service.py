"""Courier lookup service: resolves the active courier for a courier type."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import NotFoundException
from src.models.courier import Courier
from src.models.enums import CourierType
from src.modules.courier.constants import MANUAL_DISPATCH_TYPES


class CourierService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_by_type(self, courier_type: CourierType) -> Courier:
        result = await self.db.execute(
            select(Courier)
            .where(
                Courier.courier_type == courier_type,
                Courier.is_active.is_(True),
                Courier.is_deleted.is_(False),
            )
            .order_by(Courier.created_at.asc())
            .limit(1)
        )
        courier = result.scalar_one_or_none()
        if courier is None:
            raise NotFoundException(f"Active courier with type {courier_type.value} not found")
        return courier

    async def get_courier(self, courier_id: uuid.UUID) -> Courier:
        result = await self.db.execute(select(Courier).where(Courier.id == courier_id))
        courier = result.scalar_one_or_none()
        if courier is None:
            raise NotFoundException(f"Courier {courier_id} not found")
        return courier

    @staticmethod
    def supports_manual_dispatch(courier: Courier) -> bool:
        return courier.courier_type in MANUAL_DISPATCH_TYPES or courier.is_manual_dispatch
