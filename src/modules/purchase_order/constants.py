"""Purchase order numbering, state rules and event types."""

from src.models.enums import PurchaseOrderStatus

PO_NUMBER_PREFIX = "PO"

# Minimum number of purchase orders a combine or merge needs
MIN_MERGE_COUNT = 2

# Statuses that exclude a PO from combining
NON_COMBINABLE_STATUSES: set[PurchaseOrderStatus] = {
    PurchaseOrderStatus.MERGED,
    PurchaseOrderStatus.CANCELLED,
}

# Domain event type strings
EVENT_PO_CREATED = "purchase_order.created"
EVENT_PO_MERGED = "purchase_order.merged"
EVENT_PO_CANCELLED = "purchase_order.cancelled"
