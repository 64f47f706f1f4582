# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from src.models.courier import Courier
from src.models.delivery_challan import DeliveryChallan
from src.models.document_sequence import DocumentSequence
from src.models.enums import (
    CourierType,
    EventStatus,
    OrderKind,
    OrderStatus,
    PrintStatus,
    PurchaseOrderStatus,
    ShipmentStatus,
)
from src.models.event_outbox import EventOutbox
from src.models.order import ORDER_MODELS, BankOrder, BipOrder
from src.models.processed_event import ProcessedEvent
from src.models.product import Product
from src.models.purchase_order import PurchaseOrder
from src.models.purchase_order_item import PurchaseOrderItem
from src.models.shipment import Shipment
from src.models.vendor import Vendor

__all__ = [
    "ORDER_MODELS",
    "BankOrder",
    "BipOrder",
    "Courier",
    "CourierType",
    "DeliveryChallan",
    "DocumentSequence",
    "EventOutbox",
    "EventStatus",
    "OrderKind",
    "OrderStatus",
    "PrintStatus",
    "ProcessedEvent",
    "Product",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatus",
    "Shipment",
    "ShipmentStatus",
    "Vendor",
]
