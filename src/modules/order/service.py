"""Order access for the fulfillment core: lookup and status transitions.

Orders are owned by the intake subsystem. This service only reads them and
moves ``status``/``status_history``/``shipment_id``, which are the fields
fulfillment is allowed to write.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import InvalidStateException, NotFoundException
from src.models.enums import OrderKind, OrderStatus
from src.models.order import ORDER_MODELS, BankOrder, BipOrder
from src.modules.order.constants import ORDER_TRANSITIONS

logger = logging.getLogger(__name__)

Order = BankOrder | BipOrder


def append_status_history(order: Order, status: OrderStatus, note: str | None = None) -> None:
    """Append a history entry. The list is replaced, never mutated in place."""
    entry = {
        "status": status.value,
        "timestamp": datetime.now(UTC).isoformat(),
        "note": note,
    }
    order.status_history = [*(order.status_history or []), entry]


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get_order(self, kind: OrderKind, order_id: uuid.UUID) -> Order:
        """Fetch a non-deleted order. Raises NotFoundException if missing."""
        model = ORDER_MODELS[kind]
        result = await self.db.execute(
            select(model).where(model.id == order_id, model.is_deleted.is_(False))
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"{kind.value.title()} order {order_id} not found")
        return order

    async def get_orders(self, kind: OrderKind, order_ids: list[uuid.UUID]) -> dict[uuid.UUID, Order]:
        """Fetch non-deleted orders by id; missing ids are simply absent."""
        if not order_ids:
            return {}
        model = ORDER_MODELS[kind]
        result = await self.db.execute(
            select(model).where(model.id.in_(order_ids), model.is_deleted.is_(False))
        )
        return {order.id: order for order in result.scalars().all()}

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @staticmethod
    def validate_transition(current: OrderStatus, target: OrderStatus) -> None:
        allowed = ORDER_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidStateException(
                f"Cannot transition order from '{current.value}' to '{target.value}'. "
                f"Allowed targets: {sorted(s.value for s in allowed)}"
            )

    def transition(self, order: Order, target: OrderStatus, note: str | None = None) -> None:
        """Validate and apply a status change, recording it in the history."""
        self.validate_transition(order.status, target)
        previous = order.status
        order.status = target
        append_status_history(order, target, note)
        logger.info(
            "%s order %s: %s -> %s", order.kind.value, order.id, previous.value, target.value
        )
