"""Purchase order aggregator: creation, batch creation, combining and merging.

A PO in MERGED or CANCELLED status is locked: no line edits, no status
changes. Merging creates a new ACTIVE PO that carries every absorbed line,
tagged with the PO number it came from.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import (
    AppException,
    ConflictException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from src.models.enums import OrderKind, PurchaseOrderStatus
from src.models.product import Product
from src.models.purchase_order import PurchaseOrder
from src.models.purchase_order_item import PurchaseOrderItem
from src.models.vendor import Vendor
from src.modules.events.outbox_service import OutboxService
from src.modules.numbering.service import DocumentNumberService
from src.modules.order.service import Order, OrderService
from src.modules.purchase_order.constants import (
    EVENT_PO_CANCELLED,
    EVENT_PO_CREATED,
    EVENT_PO_MERGED,
    MIN_MERGE_COUNT,
    NON_COMBINABLE_STATUSES,
    PO_NUMBER_PREFIX,
)
from src.modules.purchase_order.pdf import render_purchase_order_pdf

logger = logging.getLogger(__name__)


def _line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return Decimal(quantity) * Decimal(unit_price)


def _recompute_total(po: PurchaseOrder) -> None:
    po.total_amount = sum((item.line_total for item in po.items), Decimal("0"))


class PurchaseOrderService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.orders = OrderService(db)
        self.numbers = DocumentNumberService(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_vendor(self, vendor_id: uuid.UUID) -> Vendor:
        result = await self.db.execute(
            select(Vendor).where(Vendor.id == vendor_id, Vendor.is_deleted.is_(False))
        )
        vendor = result.scalar_one_or_none()
        if vendor is None:
            raise NotFoundException(f"Vendor {vendor_id} not found")
        return vendor

    async def _get_products(self, product_ids: list[uuid.UUID]) -> dict[uuid.UUID, Product]:
        """Load products by id; raises NotFoundException naming the first missing one."""
        unique_ids = list(dict.fromkeys(product_ids))
        result = await self.db.execute(
            select(Product).where(Product.id.in_(unique_ids), Product.is_deleted.is_(False))
        )
        products = {p.id: p for p in result.scalars().all()}
        for product_id in unique_ids:
            if product_id not in products:
                raise NotFoundException(f"Product {product_id} not found")
        return products

    async def _next_po_number(self) -> str:
        return await self.numbers.next_number(PO_NUMBER_PREFIX, PurchaseOrder.po_number)

    @staticmethod
    def _ensure_editable(po: PurchaseOrder) -> None:
        if po.is_locked:
            raise InvalidStateException(
                f"Cannot update {po.status.value.lower()} purchase order {po.po_number}"
            )

    async def _publish(self, event_type: str, po: PurchaseOrder, payload: dict) -> None:
        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=event_type,
            aggregate_type="purchase_order",
            aggregate_id=str(po.id),
            payload={"po_id": str(po.id), "po_number": po.po_number, **payload},
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get_purchase_order(self, po_id: uuid.UUID) -> PurchaseOrder:
        result = await self.db.execute(
            select(PurchaseOrder).where(
                PurchaseOrder.id == po_id, PurchaseOrder.is_deleted.is_(False)
            )
        )
        po = result.scalar_one_or_none()
        if po is None:
            raise NotFoundException(f"Purchase order {po_id} not found")
        return po

    async def list_purchase_orders(
        self,
        vendor_id: uuid.UUID | None = None,
        status: PurchaseOrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[PurchaseOrder], int]:
        filters = [PurchaseOrder.is_deleted.is_(False)]
        if vendor_id is not None:
            filters.append(PurchaseOrder.vendor_id == vendor_id)
        if status is not None:
            filters.append(PurchaseOrder.status == status)

        count_result = await self.db.execute(
            select(func.count()).select_from(PurchaseOrder).where(*filters)
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(
            select(PurchaseOrder)
            .where(*filters)
            .order_by(PurchaseOrder.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_combinable(
        self,
        vendor_id: uuid.UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[PurchaseOrder]:
        """Live POs of one vendor that can still be combined, newest first.

        ``end_date`` is inclusive of the whole day.
        """
        query = select(PurchaseOrder).where(
            PurchaseOrder.vendor_id == vendor_id,
            PurchaseOrder.is_deleted.is_(False),
            PurchaseOrder.status.notin_(NON_COMBINABLE_STATUSES),
        )
        if start_date is not None:
            query = query.where(
                PurchaseOrder.created_at >= datetime.combine(start_date, time.min, tzinfo=UTC)
            )
        if end_date is not None:
            next_day = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=UTC)
            query = query.where(PurchaseOrder.created_at < next_day)

        result = await self.db.execute(query.order_by(PurchaseOrder.created_at.desc()))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_purchase_order(
        self,
        vendor_id: uuid.UUID,
        items: list[dict],
        bank_order_id: uuid.UUID | None = None,
        bip_order_id: uuid.UUID | None = None,
    ) -> PurchaseOrder:
        """Create an ACTIVE PO; every product must exist."""
        if not items:
            raise ValidationException("A purchase order needs at least one item")
        await self._get_vendor(vendor_id)
        products = await self._get_products([item["product_id"] for item in items])

        po_items = []
        for line_number, item in enumerate(items, start=1):
            product = products[item["product_id"]]
            unit_price = Decimal(item["unit_price"])
            po_items.append(
                PurchaseOrderItem(
                    line_number=line_number,
                    product_id=product.id,
                    product_name=product.name,
                    bank_product_number=product.bank_product_number,
                    product_color=item.get("product_color") or product.color,
                    quantity=item["quantity"],
                    unit_price=unit_price,
                    line_total=_line_total(item["quantity"], unit_price),
                    bank_order_id=bank_order_id,
                    bip_order_id=bip_order_id,
                    serial_number=item.get("serial_number"),
                )
            )

        po = await self._persist_new(
            vendor_id=vendor_id,
            items=po_items,
            bank_order_id=bank_order_id,
            bip_order_id=bip_order_id,
        )
        logger.info("Created purchase order %s with %d items", po.po_number, len(po_items))
        return po

    async def _persist_new(
        self,
        vendor_id: uuid.UUID,
        items: list[PurchaseOrderItem],
        bank_order_id: uuid.UUID | None = None,
        bip_order_id: uuid.UUID | None = None,
        po_number: str | None = None,
        merged_from: list[str] | None = None,
    ) -> PurchaseOrder:
        po = PurchaseOrder(
            po_number=po_number or await self._next_po_number(),
            vendor_id=vendor_id,
            bank_order_id=bank_order_id,
            bip_order_id=bip_order_id,
            status=PurchaseOrderStatus.ACTIVE,
            merged_from=merged_from or [],
            items=items,
        )
        _recompute_total(po)
        self.db.add(po)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise ConflictException(f"PO number {po.po_number} already exists") from exc

        await self._publish(
            EVENT_PO_CREATED,
            po,
            {"vendor_id": str(vendor_id), "total_amount": str(po.total_amount)},
        )
        return po

    async def bulk_create_from_orders(
        self,
        vendor_id: uuid.UUID,
        unit_price: Decimal,
        bank_order_ids: list[uuid.UUID] | None = None,
        bip_order_ids: list[uuid.UUID] | None = None,
    ) -> dict:
        """Create one PO per order; all orders must carry the same product.

        Every precondition is checked before the first write. After that,
        each order gets its own savepoint and a failure is reported, not
        raised.
        """
        bank_order_ids = bank_order_ids or []
        bip_order_ids = bip_order_ids or []
        if not bank_order_ids and not bip_order_ids:
            raise ValidationException("At least one bank order or BIP order id is required")

        await self._get_vendor(vendor_id)

        targets: list[Order] = []
        for kind, ids in ((OrderKind.BANK, bank_order_ids), (OrderKind.BIP, bip_order_ids)):
            for order_id in ids:
                order = await self.orders.get_order(kind, order_id)
                if order.product_id is None:
                    raise ValidationException(
                        f"{kind.value.title()} order {order_id} does not have a product assigned"
                    )
                targets.append(order)

        product_ids = {order.product_id for order in targets}
        if len(product_ids) > 1:
            raise ValidationException(
                f"All orders must have the same product. Found {len(product_ids)} different products."
            )
        product = (await self._get_products(list(product_ids)))[product_ids.pop()]

        result: dict = {"success_count": 0, "failed_count": 0, "successes": [], "failures": []}
        for order in targets:
            try:
                async with self.db.begin_nested():
                    po = await self._persist_new(
                        vendor_id=vendor_id,
                        items=[
                            PurchaseOrderItem(
                                line_number=1,
                                product_id=product.id,
                                product_name=product.name or order.product_name,
                                bank_product_number=product.bank_product_number,
                                product_color=order.color,
                                quantity=order.quantity,
                                unit_price=Decimal(unit_price),
                                line_total=_line_total(order.quantity, unit_price),
                                bank_order_id=order.id if order.kind == OrderKind.BANK else None,
                                bip_order_id=order.id if order.kind == OrderKind.BIP else None,
                            )
                        ],
                        bank_order_id=order.id if order.kind == OrderKind.BANK else None,
                        bip_order_id=order.id if order.kind == OrderKind.BIP else None,
                    )
            except (AppException, SQLAlchemyError) as exc:
                logger.warning("PO creation failed for %s order %s: %s", order.kind.value, order.id, exc)
                result["failed_count"] += 1
                result["failures"].append(
                    {"order_kind": order.kind, "order_id": order.id, "error": str(exc)}
                )
                continue

            result["success_count"] += 1
            result["successes"].append(
                {
                    "order_kind": order.kind,
                    "order_id": order.id,
                    "po_id": po.id,
                    "po_number": po.po_number,
                }
            )

        logger.info(
            "Bulk PO creation for vendor %s: %d created, %d failed",
            vendor_id,
            result["success_count"],
            result["failed_count"],
        )
        return result

    # ------------------------------------------------------------------
    # Combine / merge
    # ------------------------------------------------------------------

    async def _load_for_merge(self, po_ids: list[uuid.UUID]) -> tuple[list[PurchaseOrder], Vendor]:
        unique_ids = list(dict.fromkeys(po_ids))
        if len(unique_ids) < MIN_MERGE_COUNT:
            raise ValidationException(
                f"At least {MIN_MERGE_COUNT} distinct purchase orders are required to combine"
            )

        result = await self.db.execute(
            select(PurchaseOrder).where(
                PurchaseOrder.id.in_(unique_ids), PurchaseOrder.is_deleted.is_(False)
            )
        )
        by_id = {po.id: po for po in result.scalars().all()}
        missing = [str(po_id) for po_id in unique_ids if po_id not in by_id]
        if missing:
            raise NotFoundException(f"Purchase orders not found: {', '.join(missing)}")
        pos = [by_id[po_id] for po_id in unique_ids]

        if len({po.vendor_id for po in pos}) > 1:
            raise ValidationException("Cannot combine purchase orders from different vendors")

        merged = [po.po_number for po in pos if po.status == PurchaseOrderStatus.MERGED]
        if merged:
            raise ConflictException(f"Cannot combine already merged POs: {', '.join(merged)}")
        cancelled = [po.po_number for po in pos if po.status == PurchaseOrderStatus.CANCELLED]
        if cancelled:
            raise InvalidStateException(f"Cannot combine cancelled POs: {', '.join(cancelled)}")

        vendor = await self._get_vendor(pos[0].vendor_id)
        return pos, vendor

    @staticmethod
    def _combined_items(pos: list[PurchaseOrder]) -> list[dict]:
        combined = []
        for po in pos:
            for item in po.items:
                combined.append(
                    {
                        "product_id": item.product_id,
                        "product_name": item.product_name,
                        "bank_product_number": item.bank_product_number,
                        "product_color": item.product_color,
                        "quantity": item.quantity,
                        "unit_price": item.unit_price,
                        "line_total": item.line_total,
                        "serial_number": item.serial_number,
                        "source_po": po.po_number,
                        "bank_order_id": item.bank_order_id or po.bank_order_id,
                        "bip_order_id": item.bip_order_id or po.bip_order_id,
                    }
                )
        return combined

    async def combine_preview(self, po_ids: list[uuid.UUID]) -> dict:
        """Synthetic combined view of several POs. Writes nothing."""
        pos, vendor = await self._load_for_merge(po_ids)

        related_bank = [po.bank_order_id for po in pos if po.bank_order_id]
        related_bip = [po.bip_order_id for po in pos if po.bip_order_id]
        return {
            "po_numbers": [po.po_number for po in pos],
            "vendor_id": vendor.id,
            "vendor_name": vendor.vendor_name,
            "items": self._combined_items(pos),
            "total_amount": sum((Decimal(po.total_amount) for po in pos), Decimal("0")),
            "related_orders": {"bank_order_ids": related_bank, "bip_order_ids": related_bip},
            "combined_at": datetime.now(UTC),
            "original_po_count": len(pos),
        }

    async def merge_permanently(
        self, po_ids: list[uuid.UUID], new_po_number: str | None = None
    ) -> PurchaseOrder:
        """Replace several POs with one new PO.

        The new PO and the MERGED flag on every absorbed PO are written in
        the caller's transaction, so either all of it lands or none does.
        """
        pos, vendor = await self._load_for_merge(po_ids)

        if new_po_number and await self.numbers.is_taken(new_po_number, PurchaseOrder.po_number):
            raise ConflictException(f"PO number {new_po_number} already exists")

        items = [
            PurchaseOrderItem(line_number=line_number, **fields)
            for line_number, fields in enumerate(self._combined_items(pos), start=1)
        ]
        merged_po = await self._persist_new(
            vendor_id=vendor.id,
            items=items,
            po_number=new_po_number,
            merged_from=[po.po_number for po in pos],
        )

        for po in pos:
            po.status = PurchaseOrderStatus.MERGED
            po.merged_into_id = merged_po.id
        await self.db.flush()

        await self._publish(
            EVENT_PO_MERGED,
            merged_po,
            {"merged_from": merged_po.merged_from, "vendor_id": str(vendor.id)},
        )
        logger.info(
            "Merged %s into %s (total %s)",
            ", ".join(merged_po.merged_from),
            merged_po.po_number,
            merged_po.total_amount,
        )
        return merged_po

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_item_updates(po: PurchaseOrder, updates: list[dict]) -> None:
        for update in updates:
            matches = [item for item in po.items if item.product_id == update["product_id"]]
            if update.get("line_number") is not None:
                matches = [item for item in matches if item.line_number == update["line_number"]]
            if not matches:
                raise NotFoundException(
                    f"Product {update['product_id']} not found in purchase order {po.po_number}"
                )
            item = matches[0]
            if update.get("serial_number") is not None:
                item.serial_number = update["serial_number"]
            if update.get("quantity") is not None:
                item.quantity = update["quantity"]
                item.line_total = _line_total(item.quantity, item.unit_price)
        _recompute_total(po)

    async def update_purchase_order(self, po_id: uuid.UUID, items: list[dict]) -> PurchaseOrder:
        """Edit serial numbers and quantities of existing lines."""
        po = await self.get_purchase_order(po_id)
        self._ensure_editable(po)
        self._apply_item_updates(po, items)
        await self.db.flush()
        logger.info("Updated %d lines on purchase order %s", len(items), po.po_number)
        return po

    async def bulk_update(self, updates: list[dict]) -> dict:
        """Apply several PO updates, reporting each one's outcome."""
        result: dict = {"success_count": 0, "failed_count": 0, "successes": [], "failures": []}
        for entry in updates:
            po_id = entry["po_id"]
            try:
                async with self.db.begin_nested():
                    po = await self.update_purchase_order(po_id, entry["items"])
            except (AppException, SQLAlchemyError) as exc:
                result["failed_count"] += 1
                result["failures"].append({"po_id": po_id, "error": str(exc)})
                continue
            result["success_count"] += 1
            result["successes"].append({"po_id": po.id, "po_number": po.po_number})
        return result

    # ------------------------------------------------------------------
    # Cancel / remove
    # ------------------------------------------------------------------

    async def cancel_purchase_order(
        self, po_id: uuid.UUID, reason: str | None = None
    ) -> PurchaseOrder:
        po = await self.get_purchase_order(po_id)
        if po.status == PurchaseOrderStatus.CANCELLED:
            raise ConflictException(f"Purchase order {po.po_number} is already cancelled")
        if po.status == PurchaseOrderStatus.MERGED:
            raise ConflictException(f"Cannot cancel merged purchase order {po.po_number}")

        po.status = PurchaseOrderStatus.CANCELLED
        po.cancel_reason = reason
        po.cancelled_at = datetime.now(UTC)
        await self.db.flush()

        await self._publish(EVENT_PO_CANCELLED, po, {"reason": reason})
        logger.info("Cancelled purchase order %s", po.po_number)
        return po

    async def remove_purchase_order(self, po_id: uuid.UUID) -> None:
        po = await self.get_purchase_order(po_id)
        po.is_deleted = True
        await self.db.flush()
        logger.info("Soft-deleted purchase order %s", po.po_number)

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    async def download_pdf(self, po_id: uuid.UUID) -> tuple[PurchaseOrder, bytes]:
        """Render the PO for the vendor; merged and cancelled POs render too."""
        po = await self.get_purchase_order(po_id)
        vendor = await self.db.get(Vendor, po.vendor_id)
        if vendor is None:
            logger.warning("Vendor %s missing for purchase order %s", po.vendor_id, po.po_number)
        return po, render_purchase_order_pdf(po, vendor)
