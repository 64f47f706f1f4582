"""Order notifications: WhatsApp order confirmation requests and replies."""

from __future__ import annotations

import logging
import secrets
import time
import uuid
from datetime import UTC, datetime
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import AppException, NotFoundException
from src.models.enums import OrderKind, OrderStatus
from src.modules.events.outbox_service import OutboxService
from src.modules.notification.constants import (
    CANCELLED,
    CONFIRMED,
    EVENT_ORDER_CONFIRMATION_SENT,
    TOKEN_PREFIX,
    TOKEN_RANDOM_BYTES,
)
from src.modules.notification.gateway import WhatsAppGateway
from src.modules.order.service import Order, OrderService

logger = logging.getLogger(__name__)


def generate_confirmation_token(kind: OrderKind, order_id: uuid.UUID) -> str:
    timestamp_ms = int(time.time() * 1000)
    random_part = secrets.token_hex(TOKEN_RANDOM_BYTES)
    return f"{TOKEN_PREFIX}_{kind.value.lower()}_{order_id}_{timestamp_ms}_{random_part}"


def confirmation_url(token: str, status: str) -> str:
    return f"{settings.order_confirmation_base_url}?{urlencode({'token': token, 'status': status})}"


class NotificationService:
    def __init__(self, db: AsyncSession, gateway: WhatsAppGateway | None = None):
        self.db = db
        self.gateway = gateway or WhatsAppGateway()
        self.orders = OrderService(db)

    async def send_confirmations(self, kind: OrderKind, order_ids: list[uuid.UUID]) -> dict:
        """Ask each customer to confirm or cancel their order over WhatsApp.

        Per-order failures are reported in ``results``; nothing is raised.
        """
        result: dict = {"success_count": 0, "failed_count": 0, "results": []}
        found = await self.orders.get_orders(kind, order_ids)

        for order_id in order_ids:
            order = found.get(order_id)
            if order is None:
                error = "Order not found"
            else:
                error = await self._send_confirmation(order)

            if error is None:
                result["success_count"] += 1
            else:
                result["failed_count"] += 1
            result["results"].append(
                {"order_id": order_id, "success": error is None, "error": error}
            )

        logger.info(
            "Sent %d %s order confirmations (%d failed)",
            result["success_count"],
            kind.value,
            result["failed_count"],
        )
        return result

    async def _send_confirmation(self, order: Order) -> str | None:
        """Send one confirmation request; returns an error message or None."""
        token = generate_confirmation_token(order.kind, order.id)
        sent = await self.gateway.send_order_confirmation(
            phone=order.mobile,
            customer_name=order.customer_name,
            order_reference=order.reference_number,
            product=f"{order.product_name} (Qty: {order.quantity})",
            confirmation_url=confirmation_url(token, CONFIRMED),
            cancellation_url=confirmation_url(token, CANCELLED),
        )
        if not sent.success:
            return sent.message

        order.whatsapp_confirmation_token = token
        order.whatsapp_confirmation_sent_at = datetime.now(UTC)
        await self.db.flush()

        await OutboxService(self.db).publish_event(
            event_type=EVENT_ORDER_CONFIRMATION_SENT,
            aggregate_type=f"{order.kind.value.lower()}_order",
            aggregate_id=str(order.id),
            payload={"order_kind": order.kind.value, "order_id": str(order.id)},
        )
        return None

    async def process_confirmation(
        self,
        kind: OrderKind,
        order_id: uuid.UUID,
        token: str,
        confirmed: bool,
    ) -> dict:
        """Apply the customer's reply to a confirmation request.

        The token must match the one sent to this order. A second reply is
        reported with ``success=False`` and changes nothing.
        """
        order = await self.orders.get_order(kind, order_id)
        if not token or order.whatsapp_confirmation_token != token:
            raise NotFoundException("Order not found or invalid order ID/confirmation token combination")

        if order.whatsapp_confirmed_at is not None:
            return {
                "success": False,
                "message": "This order has already been confirmed/cancelled",
                "order_id": order.id,
                "status": order.status,
            }

        target = OrderStatus.CONFIRMED if confirmed else OrderStatus.CANCELLED
        verb = CONFIRMED if confirmed else CANCELLED
        self.orders.transition(order, target, note=f"Customer {verb} via WhatsApp")
        order.whatsapp_confirmed_at = datetime.now(UTC)
        await self.db.flush()

        return {
            "success": True,
            "message": f"Order {verb} successfully",
            "order_id": order.id,
            "status": order.status,
        }


async def send_dispatch_notification(payload: dict, gateway: WhatsAppGateway | None = None) -> None:
    """Tell the customer which courier has their parcel.

    Raises AppException when the gateway reports a failure so the outbox
    retries the event.
    """
    gateway = gateway or WhatsAppGateway()
    try:
        sent = await gateway.send_dispatch_notification(
            phone=payload["customer_phone"],
            customer_name=payload["customer_name"],
            courier_name=payload["courier_name"],
            tracking_number=payload.get("consignment_number") or payload["tracking_number"],
        )
    finally:
        await gateway.close()
    if not sent.success:
        raise AppException(sent.message)
    logger.info("Dispatch notification sent for shipment %s", payload.get("shipment_id"))
