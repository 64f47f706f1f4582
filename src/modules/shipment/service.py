"""Shipment ledger: lookup, listing, and the shipment status state machine.

A shipment is the single source of truth for whether an order has been
dispatched. Shipments are created only by ``DispatchService``; this service
owns every later status change, including the delivered cascade onto the
owning order.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.exceptions import (
    ConflictException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from src.models.courier import Courier
from src.models.enums import CourierType, OrderKind, OrderStatus, ShipmentStatus
from src.models.shipment import Shipment
from src.modules.events.outbox_service import OutboxService
from src.modules.order.service import OrderService
from src.modules.shipment.constants import EVENT_SHIPMENT_STATUS_UPDATED, VALID_TRANSITIONS

logger = logging.getLogger(__name__)


class ShipmentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.orders = OrderService(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def validate_transition(current: ShipmentStatus, target: ShipmentStatus) -> None:
        """Raise InvalidStateException if the transition is not allowed."""
        allowed = VALID_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidStateException(
                f"Cannot transition shipment from '{current.value}' to '{target.value}'. "
                f"Allowed targets: {sorted(s.value for s in allowed)}"
            )

    async def flush_guarded(self, shipment: Shipment) -> None:
        """Flush pending changes, turning a concurrent edit into a conflict."""
        try:
            await self.db.flush()
        except StaleDataError as exc:
            raise ConflictException(
                f"Shipment {shipment.id} was modified concurrently; reload and retry"
            ) from exc

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get_shipment(self, shipment_id: uuid.UUID) -> Shipment:
        """Fetch a non-deleted shipment. Raises NotFoundException if missing."""
        result = await self.db.execute(
            select(Shipment).where(Shipment.id == shipment_id, Shipment.is_deleted.is_(False))
        )
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise NotFoundException(f"Shipment {shipment_id} not found")
        return shipment

    async def find_by_tracking_number(self, tracking_number: str) -> Shipment:
        result = await self.db.execute(
            select(Shipment)
            .where(
                Shipment.tracking_number == tracking_number,
                Shipment.is_deleted.is_(False),
            )
            .order_by(Shipment.created_at.desc())
            .limit(1)
        )
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise NotFoundException(f"Shipment with tracking number {tracking_number} not found")
        return shipment

    async def find_active_for_order(self, kind: OrderKind, order_id: uuid.UUID) -> Shipment | None:
        """Return the order's non-deleted shipment, whatever its status."""
        column = Shipment.bank_order_id if kind == OrderKind.BANK else Shipment.bip_order_id
        result = await self.db.execute(
            select(Shipment).where(
                column == order_id,
                Shipment.is_deleted.is_(False),
            )
        )
        return result.scalars().first()

    async def list_shipments(
        self,
        status: ShipmentStatus | None = None,
        courier_type: CourierType | None = None,
        city: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Shipment], int]:
        query = select(Shipment).where(Shipment.is_deleted.is_(False))
        count_query = select(func.count()).select_from(Shipment).where(Shipment.is_deleted.is_(False))

        if status is not None:
            query = query.where(Shipment.status == status)
            count_query = count_query.where(Shipment.status == status)

        if courier_type is not None:
            courier_ids = select(Courier.id).where(Courier.courier_type == courier_type)
            query = query.where(Shipment.courier_id.in_(courier_ids))
            count_query = count_query.where(Shipment.courier_id.in_(courier_ids))

        if city:
            query = query.where(Shipment.customer_city.ilike(f"%{city}%"))
            count_query = count_query.where(Shipment.customer_city.ilike(f"%{city}%"))

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(Shipment.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    # ------------------------------------------------------------------
    # Status updates
    # ------------------------------------------------------------------

    async def update_status(
        self,
        shipment_id: uuid.UUID,
        status: ShipmentStatus,
        remarks: str | None = None,
    ) -> Shipment:
        """Move a shipment along its state machine.

        Delivery also moves the owning order to DELIVERED in the same
        transaction. Cancellation must go through the dispatch cancel flow so
        the courier is told and the order is released.
        """
        if status == ShipmentStatus.CANCELLED:
            raise ValidationException("Use the cancel endpoint to cancel a shipment")

        shipment = await self.get_shipment(shipment_id)
        self.validate_transition(shipment.status, status)

        previous = shipment.status
        shipment.status = status
        if remarks:
            shipment.delivery_remarks = remarks

        if status == ShipmentStatus.DELIVERED:
            shipment.actual_delivery_date = datetime.now(UTC)
            order = await self.orders.get_order(shipment.order_kind, shipment.order_id)
            self.orders.transition(
                order,
                OrderStatus.DELIVERED,
                note=f"Shipment {shipment.tracking_number} delivered",
            )

        await self.flush_guarded(shipment)

        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=EVENT_SHIPMENT_STATUS_UPDATED,
            aggregate_type="shipment",
            aggregate_id=str(shipment.id),
            payload={
                "shipment_id": str(shipment.id),
                "tracking_number": shipment.tracking_number,
                "from_status": previous.value,
                "to_status": status.value,
            },
        )

        logger.info(
            "Shipment %s (%s): %s -> %s",
            shipment.id,
            shipment.tracking_number,
            previous.value,
            status.value,
        )
        return shipment
