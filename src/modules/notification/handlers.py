"""Outbox handlers that send customer notifications."""

import asyncio

from src.modules.events.handlers import EventHandlerRegistry
from src.modules.notification.service import send_dispatch_notification
from src.modules.shipment.constants import EVENT_SHIPMENT_DISPATCHED


def handle_shipment_dispatched(payload: dict) -> None:
    """Send the courier and tracking number to the customer's WhatsApp."""
    asyncio.run(send_dispatch_notification(payload))


def register_handlers() -> None:
    EventHandlerRegistry.register(EVENT_SHIPMENT_DISPATCHED, handle_shipment_dispatched)
