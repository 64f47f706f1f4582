"""Dispatch orchestration: book an order with a courier and record the shipment.

The courier call happens before any write. A rejected booking leaves the
order and ledger untouched; a successful one creates the shipment and moves
the order to DISPATCHED in the caller's transaction. Challan generation and
the customer notification follow as best-effort steps inside savepoints.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import (
    ConflictException,
    InvalidStateException,
    UpstreamFailureException,
    ValidationException,
)
from src.models.courier import Courier
from src.models.enums import CourierType, OrderKind, OrderStatus, ShipmentStatus
from src.models.shipment import Shipment
from src.modules.challan.service import ChallanService
from src.modules.courier.providers.base import (
    BookingRequest,
    BookingResult,
    CourierProviderBase,
    TrackingResult,
)
from src.modules.courier.providers.factory import get_provider_for_courier
from src.modules.courier.service import CourierService
from src.modules.events.outbox_service import OutboxService
from src.modules.order.service import Order, OrderService
from src.modules.shipment.constants import (
    DEFAULT_CANCELLATION_REMARK,
    EVENT_CHALLAN_AUTO_CREATE_FAILED,
    EVENT_SHIPMENT_CANCELLED,
    EVENT_SHIPMENT_DISPATCHED,
)
from src.modules.shipment.schemas import DispatchRequest, ManualDispatchRequest
from src.modules.shipment.service import ShipmentService

logger = logging.getLogger(__name__)

ProviderResolver = Callable[[Courier], CourierProviderBase]


class DispatchService:
    def __init__(
        self,
        db: AsyncSession,
        provider_resolver: ProviderResolver = get_provider_for_courier,
        challan_service: ChallanService | None = None,
    ):
        self.db = db
        self.orders = OrderService(db)
        self.couriers = CourierService(db)
        self.shipments = ShipmentService(db)
        self.challans = challan_service or ChallanService(db)
        self._resolve_provider = provider_resolver

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(
        self, kind: OrderKind, order_id: uuid.UUID, request: DispatchRequest
    ) -> Shipment:
        """Book ``order_id`` with an API-integrated courier."""
        order, courier = await self._prepare(kind, order_id, request.courier_type)
        if CourierService.supports_manual_dispatch(courier):
            raise ValidationException(
                f"Courier {courier.courier_name} has no booking API; use manual dispatch"
            )

        booking = self._build_booking_request(order, courier, request)
        result = await self._book(order, courier, booking)
        return await self._complete_dispatch(order, courier, booking, result)

    async def dispatch_manually(
        self, kind: OrderKind, order_id: uuid.UUID, request: ManualDispatchRequest
    ) -> Shipment:
        """Record a dispatch made outside any courier API."""
        order, courier = await self._prepare(kind, order_id, request.courier_type)
        if not CourierService.supports_manual_dispatch(courier):
            raise ValidationException(
                f"Courier type {request.courier_type.value} does not support manual dispatch"
            )

        booking = self._build_booking_request(
            order,
            courier,
            DispatchRequest(
                courier_type=request.courier_type,
                product_description=request.product_description,
                special_instructions=request.remarks,
            ),
        )
        booking.tracking_number = request.tracking_number
        booking.consignment_number = request.consignment_number

        result = await self._book(order, courier, booking)
        return await self._complete_dispatch(order, courier, booking, result)

    async def _book(self, order: Order, courier: Courier, booking: BookingRequest) -> BookingResult:
        provider = self._resolve_provider(courier)
        result = await provider.book_shipment(courier, booking)
        if not result.success:
            logger.warning(
                "Booking rejected by %s for %s order %s: %s",
                courier.courier_name,
                order.kind.value,
                order.id,
                result.error,
            )
            raise UpstreamFailureException(
                f"Failed to book shipment with {courier.courier_name}: "
                f"{result.error or 'unknown error'}"
            )
        return result

    async def _prepare(
        self, kind: OrderKind, order_id: uuid.UUID, courier_type: CourierType
    ) -> tuple[Order, Courier]:
        order = await self.orders.get_order(kind, order_id)

        existing = await self.shipments.find_active_for_order(kind, order.id)
        if existing is not None:
            raise ConflictException(
                f"Shipment already exists for this order (tracking {existing.tracking_number})"
            )

        if order.status != OrderStatus.PROCESSING:
            raise InvalidStateException(
                f"Order must be in {OrderStatus.PROCESSING.value} status to dispatch; "
                f"current status is {order.status.value}"
            )

        courier = await self.couriers.get_active_by_type(courier_type)
        return order, courier

    @staticmethod
    def _build_booking_request(
        order: Order, courier: Courier, request: DispatchRequest
    ) -> BookingRequest:
        if order.kind == OrderKind.BANK and courier.courier_type == CourierType.TCS:
            reference = order.po_number or order.reference_number
        else:
            reference = order.reference_number

        description = request.product_description or (
            f"{order.gift_code or order.product_name} - (Qty: {order.quantity})"
        )
        declared_value = (
            request.declared_value if request.declared_value is not None else order.order_value
        )

        return BookingRequest(
            customer_name=order.customer_name,
            customer_phone=order.mobile,
            customer_address=order.address,
            customer_city=order.city,
            product_description=description,
            quantity=order.quantity,
            customer_cnic=order.cnic,
            declared_value=declared_value,
            reference_number=reference,
            special_instructions=request.special_instructions,
            weight_kg=request.weight_kg,
            fragile=request.fragile,
            landmark=request.landmark,
            length_cm=request.length_cm,
            width_cm=request.width_cm,
            height_cm=request.height_cm,
            service_code=request.service_code,
        )

    async def _complete_dispatch(
        self,
        order: Order,
        courier: Courier,
        booking: BookingRequest,
        result: BookingResult,
    ) -> Shipment:
        shipment = await self._record_dispatch(order, courier, booking, result)
        await self._auto_create_challan(shipment)
        await self._queue_dispatch_notification(order, courier, shipment)
        return shipment

    async def _record_dispatch(
        self,
        order: Order,
        courier: Courier,
        booking: BookingRequest,
        result: BookingResult,
    ) -> Shipment:
        now = datetime.now(UTC)
        raw = result.raw_response
        shipment = Shipment(
            bank_order_id=order.id if order.kind == OrderKind.BANK else None,
            bip_order_id=order.id if order.kind == OrderKind.BIP else None,
            courier_id=courier.id,
            tracking_number=result.tracking_number,
            consignment_number=result.consignment_number,
            status=ShipmentStatus.BOOKED,
            customer_name=booking.customer_name,
            customer_phone=booking.customer_phone,
            customer_address=booking.customer_address,
            customer_city=booking.customer_city,
            product_description=booking.product_description,
            quantity=booking.quantity,
            declared_value=booking.declared_value,
            weight_kg=booking.weight_kg,
            special_instructions=booking.special_instructions,
            booking_date=now,
            expected_delivery_date=now + timedelta(days=settings.expected_delivery_days),
            courier_api_response=raw if isinstance(raw, dict) else {"raw": raw},
        )
        self.db.add(shipment)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise ConflictException("Shipment already exists for this order") from exc

        self.orders.transition(
            order,
            OrderStatus.DISPATCHED,
            note=f"Dispatched via {courier.courier_name} ({shipment.tracking_number})",
        )
        order.shipment_id = shipment.id
        await self.db.flush()

        logger.info(
            "Dispatched %s order %s via %s: tracking %s",
            order.kind.value,
            order.id,
            courier.courier_name,
            shipment.tracking_number,
        )
        return shipment

    async def _auto_create_challan(self, shipment: Shipment) -> None:
        try:
            async with self.db.begin_nested():
                await self.challans.auto_create_after_dispatch(shipment.id)
        except Exception as exc:
            logger.exception("Auto-creating challan failed for shipment %s", shipment.id)
            await OutboxService(self.db).record_failure(
                event_type=EVENT_CHALLAN_AUTO_CREATE_FAILED,
                aggregate_type="shipment",
                aggregate_id=str(shipment.id),
                payload={
                    "shipment_id": str(shipment.id),
                    "tracking_number": shipment.tracking_number,
                },
                error=str(exc),
            )

    async def _queue_dispatch_notification(
        self, order: Order, courier: Courier, shipment: Shipment
    ) -> None:
        try:
            async with self.db.begin_nested():
                await OutboxService(self.db).publish_event(
                    event_type=EVENT_SHIPMENT_DISPATCHED,
                    aggregate_type="shipment",
                    aggregate_id=str(shipment.id),
                    payload={
                        "shipment_id": str(shipment.id),
                        "order_kind": order.kind.value,
                        "order_id": str(order.id),
                        "customer_name": order.customer_name,
                        "customer_phone": order.mobile,
                        "courier_name": courier.courier_name,
                        "tracking_number": shipment.tracking_number,
                        "consignment_number": shipment.consignment_number,
                    },
                )
        except Exception:
            logger.exception("Queueing dispatch notification failed for shipment %s", shipment.id)

    # ------------------------------------------------------------------
    # Cancel / track
    # ------------------------------------------------------------------

    async def cancel(self, shipment_id: uuid.UUID, reason: str | None = None) -> Shipment:
        """Cancel with the courier, then release the order back to PROCESSING."""
        shipment = await self.shipments.get_shipment(shipment_id)
        if shipment.status == ShipmentStatus.CANCELLED:
            raise ConflictException(f"Shipment {shipment.tracking_number} is already cancelled")
        if shipment.status == ShipmentStatus.DELIVERED:
            raise InvalidStateException(
                f"Cannot cancel shipment with status {shipment.status.value}"
            )

        order = await self.orders.get_order(shipment.order_kind, shipment.order_id)
        courier = await self.couriers.get_courier(shipment.courier_id)
        provider = self._resolve_provider(courier)
        result = await provider.cancel_shipment(courier, shipment.tracking_number, reason)
        if not result.success:
            raise UpstreamFailureException(
                f"Failed to cancel shipment with {courier.courier_name}: "
                f"{result.error or 'unknown error'}"
            )

        previous = shipment.status
        shipment.status = ShipmentStatus.CANCELLED
        shipment.delivery_remarks = reason or DEFAULT_CANCELLATION_REMARK

        if order.status == OrderStatus.DISPATCHED:
            self.orders.transition(
                order,
                OrderStatus.PROCESSING,
                note=f"Shipment {shipment.tracking_number} cancelled: {shipment.delivery_remarks}",
            )
        if order.shipment_id == shipment.id:
            order.shipment_id = None

        await self.shipments.flush_guarded(shipment)

        await OutboxService(self.db).publish_event(
            event_type=EVENT_SHIPMENT_CANCELLED,
            aggregate_type="shipment",
            aggregate_id=str(shipment.id),
            payload={
                "shipment_id": str(shipment.id),
                "tracking_number": shipment.tracking_number,
                "from_status": previous.value,
                "reason": shipment.delivery_remarks,
            },
        )
        logger.info("Cancelled shipment %s (%s)", shipment.id, shipment.tracking_number)
        return shipment

    async def track(self, shipment_id: uuid.UUID) -> tuple[Shipment, TrackingResult]:
        shipment = await self.shipments.get_shipment(shipment_id)
        courier = await self.couriers.get_courier(shipment.courier_id)
        provider = self._resolve_provider(courier)
        result = await provider.track_shipment(courier, shipment.tracking_number)
        if not result.success:
            logger.info("Tracking unavailable for %s: %s", shipment.tracking_number, result.error)
        return shipment, result
