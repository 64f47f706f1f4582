import enum


class OrderKind(str, enum.Enum):
    BANK = "BANK"
    BIP = "BIP"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    DISPATCHED = "DISPATCHED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# ── Couriers & Shipments ──────────────────────────────────────────────────


class CourierType(str, enum.Enum):
    LEOPARDS = "LEOPARDS"
    TCS = "TCS"
    TCS_OVERLAND = "TCS_OVERLAND"
    SELF_DELIVERY = "SELF_DELIVERY"


class ShipmentStatus(str, enum.Enum):
    BOOKED = "BOOKED"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


# ── Procurement ────────────────────────────────────────────────────────────


class PurchaseOrderStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    MERGED = "MERGED"
    CANCELLED = "CANCELLED"


# ── Delivery Challans ──────────────────────────────────────────────────────


class PrintStatus(str, enum.Enum):
    NOT_PRINTED = "NOT_PRINTED"
    PRINTED = "PRINTED"


# ── Event Outbox ───────────────────────────────────────────────────────────


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
