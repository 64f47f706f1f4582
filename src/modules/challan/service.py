"""Delivery challan service: creation, PDF storage, downloads and print tracking."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

import httpx
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import (
    ConflictException,
    InvalidStateException,
    NotFoundException,
    UpstreamFailureException,
)
from src.models.delivery_challan import DeliveryChallan
from src.models.enums import OrderKind, OrderStatus, PrintStatus
from src.models.product import Product
from src.models.shipment import Shipment
from src.modules.challan.constants import (
    CHALLAN_NUMBER_PREFIX,
    CHALLAN_QUANTITY,
    EVENT_CHALLAN_CREATED,
)
from src.modules.challan.pdf import merge_pdfs, render_challan_pdf
from src.modules.courier.service import CourierService
from src.modules.events.outbox_service import OutboxService
from src.modules.numbering.service import DocumentNumberService
from src.modules.order.service import Order, OrderService
from src.modules.purchase_order.serial_lookup import find_serial_for_order
from src.modules.shipment.service import ShipmentService
from src.modules.storage.s3 import DocumentStorage

logger = logging.getLogger(__name__)


class ChallanService:
    def __init__(self, db: AsyncSession, storage: DocumentStorage | None = None):
        self.db = db
        self.storage = storage or DocumentStorage()
        self.orders = OrderService(db)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get_challan(self, challan_id: uuid.UUID) -> DeliveryChallan:
        result = await self.db.execute(
            select(DeliveryChallan).where(
                DeliveryChallan.id == challan_id,
                DeliveryChallan.is_deleted.is_(False),
            )
        )
        challan = result.scalar_one_or_none()
        if challan is None:
            raise NotFoundException(f"Delivery challan {challan_id} not found")
        return challan

    async def get_for_order(self, kind: OrderKind, order_id: uuid.UUID) -> DeliveryChallan:
        column = DeliveryChallan.bank_order_id if kind == OrderKind.BANK else DeliveryChallan.bip_order_id
        result = await self.db.execute(
            select(DeliveryChallan)
            .where(column == order_id, DeliveryChallan.is_deleted.is_(False))
            .order_by(DeliveryChallan.created_at.desc())
            .limit(1)
        )
        challan = result.scalar_one_or_none()
        if challan is None:
            raise NotFoundException(
                f"No delivery challan for {kind.value.lower()} order {order_id}"
            )
        return challan

    async def list_challans(
        self,
        tracking_number: str | None = None,
        customer_name: str | None = None,
        print_status: PrintStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[DeliveryChallan], int]:
        filters = [DeliveryChallan.is_deleted.is_(False)]
        if tracking_number:
            filters.append(DeliveryChallan.tracking_number.ilike(f"%{tracking_number}%"))
        if customer_name:
            filters.append(DeliveryChallan.customer_name.ilike(f"%{customer_name}%"))
        if print_status is not None:
            filters.append(DeliveryChallan.print_status == print_status)

        count_result = await self.db.execute(
            select(func.count()).select_from(DeliveryChallan).where(*filters)
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(
            select(DeliveryChallan)
            .where(*filters)
            .order_by(DeliveryChallan.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def _find_for_shipment(self, shipment_id: uuid.UUID) -> DeliveryChallan | None:
        result = await self.db.execute(
            select(DeliveryChallan).where(
                DeliveryChallan.shipment_id == shipment_id,
                DeliveryChallan.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_for_order(
        self,
        kind: OrderKind,
        order_id: uuid.UUID,
        serial_override: str | None = None,
        remarks: str | None = None,
    ) -> DeliveryChallan:
        """Create the challan for a dispatched order.

        An explicit ``serial_override`` wins over any serial recorded on the
        order's purchase order.
        """
        order = await self.orders.get_order(kind, order_id)
        self._ensure_dispatched(order)

        if await self._find_for_shipment(order.shipment_id) is not None:
            raise ConflictException(
                f"Delivery challan already exists for {kind.value.lower()} order {order_id}"
            )

        shipment = await ShipmentService(self.db).get_shipment(order.shipment_id)
        return await self._create(order, shipment, serial_override, remarks)

    async def auto_create_after_dispatch(self, shipment_id: uuid.UUID) -> DeliveryChallan:
        """Create the challan for a freshly booked shipment.

        Returns the existing challan when one was already generated.
        """
        shipment = await ShipmentService(self.db).get_shipment(shipment_id)

        existing = await self._find_for_shipment(shipment.id)
        if existing is not None:
            logger.info(
                "Challan %s already exists for shipment %s", existing.challan_number, shipment.id
            )
            return existing

        order = await self.orders.get_order(shipment.order_kind, shipment.order_id)
        self._ensure_dispatched(order)
        return await self._create(order, shipment)

    @staticmethod
    def _ensure_dispatched(order: Order) -> None:
        if order.status != OrderStatus.DISPATCHED or order.shipment_id is None:
            raise InvalidStateException(
                "Cannot create delivery challan for non-dispatched order"
            )

    async def _item_code(self, product_id: uuid.UUID | None) -> str | None:
        if product_id is None:
            return None
        result = await self.db.execute(
            select(Product.bank_product_number).where(Product.id == product_id)
        )
        return result.scalar_one_or_none()

    async def _create(
        self,
        order: Order,
        shipment: Shipment,
        serial_override: str | None = None,
        remarks: str | None = None,
    ) -> DeliveryChallan:
        serial = serial_override or await find_serial_for_order(
            self.db, order.kind, order.id, order.product_id
        )
        courier = await CourierService(self.db).get_courier(shipment.courier_id)
        item_code = await self._item_code(order.product_id)
        challan_number = await DocumentNumberService(self.db).next_number(
            CHALLAN_NUMBER_PREFIX, DeliveryChallan.challan_number
        )

        challan = DeliveryChallan(
            challan_number=challan_number,
            shipment_id=shipment.id,
            bank_order_id=order.id if order.kind == OrderKind.BANK else None,
            bip_order_id=order.id if order.kind == OrderKind.BIP else None,
            customer_name=order.customer_name,
            customer_cnic=order.cnic,
            customer_phone=order.mobile,
            customer_address=order.address,
            customer_city=order.city,
            product_name=order.product_name,
            product_brand=order.brand,
            product_color=order.color,
            item_code=item_code,
            product_serial_number=serial,
            quantity=CHALLAN_QUANTITY,
            courier_name=courier.courier_name,
            tracking_number=shipment.tracking_number,
            consignment_number=shipment.consignment_number,
            order_reference=order.document_reference,
            po_number=order.po_number,
            challan_date=datetime.now(UTC),
            dispatch_date=shipment.booking_date,
            expected_delivery_date=shipment.expected_delivery_date,
            remarks=remarks,
            print_status=PrintStatus.NOT_PRINTED,
            print_count=0,
        )
        self.db.add(challan)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise ConflictException(
                f"Delivery challan already exists for shipment {shipment.id}"
            ) from exc

        await self._store_pdf(challan)

        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=EVENT_CHALLAN_CREATED,
            aggregate_type="delivery_challan",
            aggregate_id=str(challan.id),
            payload={
                "challan_id": str(challan.id),
                "challan_number": challan.challan_number,
                "shipment_id": str(shipment.id),
                "order_kind": order.kind.value,
                "order_id": str(order.id),
            },
        )

        logger.info(
            "Created delivery challan %s for %s order %s (serial=%s)",
            challan.challan_number,
            order.kind.value,
            order.id,
            serial,
        )
        return challan

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    @staticmethod
    def _storage_key(challan: DeliveryChallan) -> str:
        return f"{settings.s3_challan_prefix}/{challan.challan_number}.pdf"

    async def _store_pdf(self, challan: DeliveryChallan) -> None:
        """Render and upload; on failure the challan keeps ``pdf_url=None``."""
        try:
            pdf = render_challan_pdf(challan)
            challan.pdf_url = await self.storage.store(pdf, self._storage_key(challan))
        except Exception:
            logger.exception("Failed to store PDF for challan %s", challan.challan_number)
            return
        await self.db.flush()

    async def regenerate_pdf(self, challan_id: uuid.UUID) -> DeliveryChallan:
        challan = await self.get_challan(challan_id)
        pdf = render_challan_pdf(challan)
        try:
            challan.pdf_url = await self.storage.store(pdf, self._storage_key(challan))
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamFailureException(
                f"Could not store PDF for challan {challan.challan_number}: {exc}"
            ) from exc
        await self.db.flush()
        logger.info("Regenerated PDF for challan %s", challan.challan_number)
        return challan

    async def _pdf_bytes(self, challan: DeliveryChallan) -> bytes:
        """Stored PDF when reachable, otherwise a fresh render."""
        if challan.pdf_url:
            try:
                return await self.storage.fetch(challan.pdf_url)
            except httpx.HTTPError as exc:
                logger.warning(
                    "Failed to fetch stored PDF for challan %s, regenerating: %s",
                    challan.challan_number,
                    exc,
                )
        return render_challan_pdf(challan)

    # ------------------------------------------------------------------
    # Download and print tracking
    # ------------------------------------------------------------------

    async def download(self, challan_id: uuid.UUID) -> tuple[DeliveryChallan, bytes]:
        challan = await self.get_challan(challan_id)
        pdf = await self._pdf_bytes(challan)
        await self.mark_printed([challan.id])
        return challan, pdf

    async def mark_printed(self, challan_ids: list[uuid.UUID]) -> int:
        """Stamp each distinct challan as printed once. Returns the number updated."""
        unique_ids = list(dict.fromkeys(challan_ids))
        if not unique_ids:
            return 0
        result = await self.db.execute(
            update(DeliveryChallan)
            .where(
                DeliveryChallan.id.in_(unique_ids),
                DeliveryChallan.is_deleted.is_(False),
            )
            .values(
                print_status=PrintStatus.PRINTED,
                printed_at=datetime.now(UTC),
                print_count=DeliveryChallan.print_count + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        await self.db.flush()
        return result.rowcount or 0

    async def _resolve_selection(
        self,
        challan_ids: list[uuid.UUID],
        bank_order_ids: list[uuid.UUID],
        bip_order_ids: list[uuid.UUID],
    ) -> list[DeliveryChallan]:
        selectors = [
            (DeliveryChallan.id, challan_ids),
            (DeliveryChallan.bank_order_id, bank_order_ids),
            (DeliveryChallan.bip_order_id, bip_order_ids),
        ]
        resolved: dict[uuid.UUID, DeliveryChallan] = {}
        for column, ids in selectors:
            if not ids:
                continue
            result = await self.db.execute(
                select(DeliveryChallan).where(
                    column.in_(ids), DeliveryChallan.is_deleted.is_(False)
                )
            )
            by_key = {getattr(c, column.key): c for c in result.scalars().all()}
            for key in ids:
                challan = by_key.get(key)
                if challan is not None:
                    resolved.setdefault(challan.id, challan)
        return list(resolved.values())

    async def bulk_download(
        self,
        challan_ids: list[uuid.UUID] | None = None,
        bank_order_ids: list[uuid.UUID] | None = None,
        bip_order_ids: list[uuid.UUID] | None = None,
    ) -> tuple[bytes, list[DeliveryChallan]]:
        """Merge the selected challans into one PDF and mark each printed.

        Unknown ids are skipped. Raises NotFoundException when nothing
        resolves.
        """
        challans = await self._resolve_selection(
            challan_ids or [], bank_order_ids or [], bip_order_ids or []
        )
        if not challans:
            raise NotFoundException("No delivery challans found for the provided IDs")

        documents = [await self._pdf_bytes(challan) for challan in challans]
        merged = merge_pdfs(documents)

        await self.mark_printed([challan.id for challan in challans])
        logger.info("Bulk downloaded %d delivery challans", len(challans))
        return merged, challans
