"""Shipment state machine transitions and event types."""

from __future__ import annotations

from src.models.enums import ShipmentStatus

# Valid status transitions: from_status -> set of allowed to_statuses
VALID_TRANSITIONS: dict[ShipmentStatus, set[ShipmentStatus]] = {
    ShipmentStatus.BOOKED: {
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.OUT_FOR_DELIVERY,
        ShipmentStatus.DELIVERED,
        ShipmentStatus.RETURNED,
        ShipmentStatus.FAILED,
        ShipmentStatus.CANCELLED,
    },
    ShipmentStatus.IN_TRANSIT: {
        ShipmentStatus.OUT_FOR_DELIVERY,
        ShipmentStatus.DELIVERED,
        ShipmentStatus.RETURNED,
        ShipmentStatus.FAILED,
        ShipmentStatus.CANCELLED,
    },
    ShipmentStatus.OUT_FOR_DELIVERY: {
        ShipmentStatus.DELIVERED,
        ShipmentStatus.RETURNED,
        ShipmentStatus.FAILED,
        ShipmentStatus.CANCELLED,
    },
    # Returned and failed parcels can still be cancelled
    ShipmentStatus.RETURNED: {ShipmentStatus.CANCELLED},
    ShipmentStatus.FAILED: {ShipmentStatus.CANCELLED},
    ShipmentStatus.DELIVERED: set(),
    ShipmentStatus.CANCELLED: set(),
}

DEFAULT_CANCELLATION_REMARK = "Cancelled by user"

# Domain event type strings
EVENT_SHIPMENT_DISPATCHED = "shipment.dispatched"
EVENT_SHIPMENT_STATUS_UPDATED = "shipment.status_updated"
EVENT_SHIPMENT_CANCELLED = "shipment.cancelled"
EVENT_CHALLAN_AUTO_CREATE_FAILED = "delivery_challan.auto_create_failed"
