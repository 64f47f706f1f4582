"""Order status transitions."""

from __future__ import annotations

from src.models.enums import OrderStatus

# ---------------------------------------------------------------------------
# Valid status transitions: current_status -> set of allowed next statuses
# ---------------------------------------------------------------------------

ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.DISPATCHED,
        OrderStatus.CANCELLED,
    },
    # Back to PROCESSING only when the shipment is cancelled
    OrderStatus.DISPATCHED: {
        OrderStatus.DELIVERED,
        OrderStatus.PROCESSING,
    },
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}
