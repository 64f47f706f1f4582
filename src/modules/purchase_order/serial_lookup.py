"""Resolve a product serial number for an order from its purchase order lines."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import OrderKind, PurchaseOrderStatus
from src.models.purchase_order import PurchaseOrder
from src.models.purchase_order_item import PurchaseOrderItem

logger = logging.getLogger(__name__)


def _pick_serial(
    items: list[PurchaseOrderItem],
    kind: OrderKind,
    order_id: uuid.UUID,
    product_id: uuid.UUID | None,
) -> str | None:
    """Product match first, then the line raised for this order, then any serial."""
    with_serial = [item for item in items if item.serial_number]

    if product_id is not None:
        for item in with_serial:
            if item.product_id == product_id:
                return item.serial_number

    for item in with_serial:
        line_order = item.bank_order_id if kind == OrderKind.BANK else item.bip_order_id
        if line_order == order_id:
            return item.serial_number

    return with_serial[0].serial_number if with_serial else None


async def find_serial_for_order(
    db: AsyncSession,
    kind: OrderKind,
    order_id: uuid.UUID,
    product_id: uuid.UUID | None = None,
) -> str | None:
    """Look up the serial number recorded against ``order_id`` on a live PO.

    Absorbed (MERGED) purchase orders rank after every other match.

    Never raises: lookup failures are logged and reported as no serial.
    """
    if kind == OrderKind.BANK:
        po_column, item_column = PurchaseOrder.bank_order_id, PurchaseOrderItem.bank_order_id
    else:
        po_column, item_column = PurchaseOrder.bip_order_id, PurchaseOrderItem.bip_order_id

    try:
        line_level = select(PurchaseOrderItem.purchase_order_id).where(item_column == order_id)
        result = await db.execute(
            select(PurchaseOrder)
            .where(
                PurchaseOrder.is_deleted.is_(False),
                or_(po_column == order_id, PurchaseOrder.id.in_(line_level)),
            )
            .order_by(
                (PurchaseOrder.status == PurchaseOrderStatus.MERGED).asc(),
                (po_column == order_id).desc().nulls_last(),
                PurchaseOrder.created_at.desc(),
            )
            .limit(1)
        )
        purchase_order = result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.exception("Serial lookup failed for %s order %s", kind.value, order_id)
        return None

    if purchase_order is None:
        logger.info("No purchase order found for %s order %s", kind.value, order_id)
        return None

    serial = _pick_serial(purchase_order.items, kind, order_id, product_id)
    if serial:
        logger.info("Found serial %s for %s order %s", serial, kind.value, order_id)
    else:
        logger.info("No serial number on %s for %s order %s", purchase_order.po_number, kind.value, order_id)
    return serial
