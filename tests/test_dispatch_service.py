"""Unit tests for DispatchService: booking, manual dispatch, cancel and track."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from src.exceptions import (
    ConflictException,
    InvalidStateException,
    NotFoundException,
    UpstreamFailureException,
    ValidationException,
)
from src.models.enums import CourierType, OrderKind, OrderStatus, ShipmentStatus
from src.models.order import BankOrder, BipOrder
from src.models.shipment import Shipment
from src.modules.courier.providers.base import BookingResult, CancellationResult, TrackingResult
from src.modules.shipment.constants import (
    EVENT_CHALLAN_AUTO_CREATE_FAILED,
    EVENT_SHIPMENT_CANCELLED,
    EVENT_SHIPMENT_DISPATCHED,
)
from src.modules.shipment.dispatch_service import DispatchService
from src.modules.shipment.schemas import DispatchRequest, ManualDispatchRequest

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db():
    session = AsyncMock()
    session.add = MagicMock(side_effect=lambda obj: setattr(obj, "id", obj.id or uuid.uuid4()))
    session.flush = AsyncMock()
    session.begin_nested = MagicMock()
    return session


@pytest.fixture
def provider():
    provider = MagicMock()
    provider.book_shipment = AsyncMock(
        return_value=BookingResult(
            success=True,
            tracking_number="779912345",
            consignment_number="779912345",
            raw_response={"consignmentNo": "779912345"},
        )
    )
    provider.cancel_shipment = AsyncMock(return_value=CancellationResult(success=True))
    provider.track_shipment = AsyncMock(
        return_value=TrackingResult(success=True, status="In Transit", current_location="Lahore")
    )
    return provider


@pytest.fixture
def challan_service():
    service = MagicMock()
    service.auto_create_after_dispatch = AsyncMock()
    return service


def _make_courier(courier_type=CourierType.TCS, is_manual_dispatch=False):
    courier = MagicMock()
    courier.id = uuid.uuid4()
    courier.courier_type = courier_type
    courier.courier_name = {
        CourierType.TCS: "TCS",
        CourierType.LEOPARDS: "Leopards Courier",
        CourierType.TCS_OVERLAND: "TCS Overland",
        CourierType.SELF_DELIVERY: "Self Delivery",
    }[courier_type]
    courier.is_manual_dispatch = is_manual_dispatch
    return courier


def _make_bank_order(status=OrderStatus.PROCESSING, **overrides) -> BankOrder:
    fields = {
        "id": uuid.uuid4(),
        "ref_no": "REF-10021",
        "po_number": "PO-2026-0007",
        "redeemed_points": Decimal("32000.00"),
        "customer_name": "Muhammad Ali Khan",
        "mobile": "03001234567",
        "cnic": "42101-1234567-1",
        "address": "House 12, Street 4, DHA Phase 5",
        "city": "Lahore",
        "product_name": "Air Fryer 4.5L",
        "gift_code": "GFT-AF45",
        "quantity": 1,
        "status": status,
        "status_history": [],
    }
    fields.update(overrides)
    return BankOrder(**fields)


def _make_bip_order(status=OrderStatus.PROCESSING) -> BipOrder:
    return BipOrder(
        id=uuid.uuid4(),
        eforms="EF-5521",
        po_number="PO-2026-0008",
        amount=Decimal("15000.00"),
        customer_name="Sara Ahmed",
        mobile="03331234567",
        address="Flat 3, Gulberg",
        city="Lahore",
        product_name="Smart Watch",
        quantity=2,
        status=status,
        status_history=[],
    )


def _make_shipment(order: BankOrder, courier, status=ShipmentStatus.BOOKED) -> Shipment:
    return Shipment(
        id=uuid.uuid4(),
        bank_order_id=order.id,
        courier_id=courier.id,
        tracking_number="779912345",
        status=status,
        customer_name=order.customer_name,
        customer_phone=order.mobile,
        customer_address=order.address,
        customer_city=order.city,
        product_description="Air Fryer 4.5L - (Qty: 1)",
        booking_date=datetime.now(UTC),
    )


def _make_service(mock_db, provider, challan_service, order=None, courier=None, existing=None):
    service = DispatchService(
        mock_db, provider_resolver=lambda courier: provider, challan_service=challan_service
    )
    service.orders.get_order = AsyncMock(return_value=order)
    service.shipments.find_active_for_order = AsyncMock(return_value=existing)
    service.couriers.get_active_by_type = AsyncMock(return_value=courier)
    service.couriers.get_courier = AsyncMock(return_value=courier)
    return service


# ---------------------------------------------------------------------------
# API dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    @pytest.mark.asyncio
    @patch("src.modules.shipment.dispatch_service.OutboxService")
    async def test_bank_order_with_tcs(self, mock_outbox_cls, mock_db, provider, challan_service):
        mock_outbox_cls.return_value.publish_event = AsyncMock()
        order = _make_bank_order()
        courier = _make_courier(CourierType.TCS)
        service = _make_service(mock_db, provider, challan_service, order, courier)

        shipment = await service.dispatch(
            OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.TCS)
        )

        booking = provider.book_shipment.call_args.args[1]
        assert booking.reference_number == "PO-2026-0007"
        assert booking.product_description == "GFT-AF45 - (Qty: 1)"
        assert booking.declared_value == Decimal("32000.00")
        assert booking.customer_cnic == "42101-1234567-1"

        assert shipment.status == ShipmentStatus.BOOKED
        assert shipment.bank_order_id == order.id
        assert shipment.bip_order_id is None
        assert shipment.tracking_number == "779912345"
        assert shipment.courier_api_response == {"consignmentNo": "779912345"}
        assert shipment.expected_delivery_date - shipment.booking_date == timedelta(days=3)

        assert order.status == OrderStatus.DISPATCHED
        assert order.shipment_id == shipment.id
        challan_service.auto_create_after_dispatch.assert_awaited_once_with(shipment.id)

        event = mock_outbox_cls.return_value.publish_event.call_args.kwargs
        assert event["event_type"] == EVENT_SHIPMENT_DISPATCHED
        assert event["payload"]["courier_name"] == "TCS"
        assert event["payload"]["customer_phone"] == "03001234567"

    @pytest.mark.asyncio
    @patch("src.modules.shipment.dispatch_service.OutboxService")
    async def test_bip_order_uses_eforms_reference(self, mock_outbox_cls, mock_db, provider, challan_service):
        mock_outbox_cls.return_value.publish_event = AsyncMock()
        order = _make_bip_order()
        service = _make_service(mock_db, provider, challan_service, order, _make_courier(CourierType.TCS))

        shipment = await service.dispatch(
            OrderKind.BIP,
            order.id,
            DispatchRequest(courier_type=CourierType.TCS, product_description="Watch (gift)"),
        )

        booking = provider.book_shipment.call_args.args[1]
        assert booking.reference_number == "EF-5521"
        assert booking.product_description == "Watch (gift)"
        assert shipment.bip_order_id == order.id

    @pytest.mark.asyncio
    @patch("src.modules.shipment.dispatch_service.OutboxService")
    async def test_bank_order_with_leopards_uses_ref_no(self, mock_outbox_cls, mock_db, provider, challan_service):
        mock_outbox_cls.return_value.publish_event = AsyncMock()
        order = _make_bank_order()
        service = _make_service(
            mock_db, provider, challan_service, order, _make_courier(CourierType.LEOPARDS)
        )

        await service.dispatch(OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.LEOPARDS))

        assert provider.book_shipment.call_args.args[1].reference_number == "REF-10021"

    @pytest.mark.asyncio
    async def test_existing_shipment_is_a_conflict(self, mock_db, provider, challan_service):
        order = _make_bank_order()
        courier = _make_courier()
        existing = _make_shipment(order, courier)
        service = _make_service(mock_db, provider, challan_service, order, courier, existing=existing)

        with pytest.raises(ConflictException, match="already exists"):
            await service.dispatch(OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.TCS))
        provider.book_shipment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelled_shipment_still_blocks_dispatch(self, mock_db, provider, challan_service):
        order = _make_bank_order()
        courier = _make_courier()
        cancelled = _make_shipment(order, courier, status=ShipmentStatus.CANCELLED)
        service = DispatchService(
            mock_db, provider_resolver=lambda courier: provider, challan_service=challan_service
        )
        service.orders.get_order = AsyncMock(return_value=order)
        result = MagicMock()
        result.scalars.return_value.first.return_value = cancelled
        mock_db.execute.return_value = result

        with pytest.raises(ConflictException, match="already exists"):
            await service.dispatch(OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.TCS))
        provider.book_shipment.assert_not_awaited()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_order_must_be_processing(self, mock_db, provider, challan_service):
        order = _make_bank_order(status=OrderStatus.CONFIRMED)
        service = _make_service(mock_db, provider, challan_service, order, _make_courier())

        with pytest.raises(InvalidStateException, match="PROCESSING"):
            await service.dispatch(OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.TCS))
        provider.book_shipment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_manual_courier_is_rejected(self, mock_db, provider, challan_service):
        order = _make_bank_order()
        service = _make_service(
            mock_db, provider, challan_service, order, _make_courier(CourierType.TCS_OVERLAND)
        )

        with pytest.raises(ValidationException, match="manual dispatch"):
            await service.dispatch(
                OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.TCS_OVERLAND)
            )

    @pytest.mark.asyncio
    async def test_rejected_booking_writes_nothing(self, mock_db, provider, challan_service):
        provider.book_shipment.return_value = BookingResult(success=False, error="Invalid city")
        order = _make_bank_order()
        service = _make_service(mock_db, provider, challan_service, order, _make_courier())

        with pytest.raises(UpstreamFailureException, match="Invalid city") as exc_info:
            await service.dispatch(OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.TCS))

        assert exc_info.value.retryable is True
        mock_db.add.assert_not_called()
        assert order.status == OrderStatus.PROCESSING
        challan_service.auto_create_after_dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unique_index_violation_is_a_conflict(self, mock_db, provider, challan_service):
        mock_db.flush.side_effect = IntegrityError("INSERT INTO shipments", {}, Exception("duplicate"))
        order = _make_bank_order()
        service = _make_service(mock_db, provider, challan_service, order, _make_courier())

        with pytest.raises(ConflictException):
            await service.dispatch(OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.TCS))
        assert order.status == OrderStatus.PROCESSING

    @pytest.mark.asyncio
    @patch("src.modules.shipment.dispatch_service.OutboxService")
    async def test_challan_failure_does_not_fail_dispatch(self, mock_outbox_cls, mock_db, provider, challan_service):
        mock_outbox_cls.return_value.publish_event = AsyncMock()
        mock_outbox_cls.return_value.record_failure = AsyncMock()
        challan_service.auto_create_after_dispatch.side_effect = RuntimeError("S3 unavailable")
        order = _make_bank_order()
        service = _make_service(mock_db, provider, challan_service, order, _make_courier())

        shipment = await service.dispatch(
            OrderKind.BANK, order.id, DispatchRequest(courier_type=CourierType.TCS)
        )

        assert order.status == OrderStatus.DISPATCHED
        failure = mock_outbox_cls.return_value.record_failure.call_args.kwargs
        assert failure["event_type"] == EVENT_CHALLAN_AUTO_CREATE_FAILED
        assert failure["aggregate_id"] == str(shipment.id)
        assert failure["error"] == "S3 unavailable"


# ---------------------------------------------------------------------------
# Manual dispatch
# ---------------------------------------------------------------------------


class TestManualDispatch:
    @pytest.mark.asyncio
    @patch("src.modules.shipment.dispatch_service.OutboxService")
    async def test_self_delivery(self, mock_outbox_cls, mock_db, provider, challan_service):
        mock_outbox_cls.return_value.publish_event = AsyncMock()
        provider.book_shipment.return_value = BookingResult(
            success=True,
            tracking_number="SD-0001",
            raw_response={"manual": True, "remarks": "Rider: Kamran"},
        )
        order = _make_bank_order()
        service = _make_service(
            mock_db, provider, challan_service, order, _make_courier(CourierType.SELF_DELIVERY)
        )

        shipment = await service.dispatch_manually(
            OrderKind.BANK,
            order.id,
            ManualDispatchRequest(
                courier_type=CourierType.SELF_DELIVERY,
                tracking_number="SD-0001",
                remarks="Rider: Kamran",
            ),
        )

        booking = provider.book_shipment.call_args.args[1]
        assert booking.tracking_number == "SD-0001"
        assert booking.special_instructions == "Rider: Kamran"
        assert shipment.tracking_number == "SD-0001"
        assert order.status == OrderStatus.DISPATCHED

    @pytest.mark.asyncio
    @patch("src.modules.shipment.dispatch_service.OutboxService")
    async def test_flagged_api_courier_allows_manual(self, mock_outbox_cls, mock_db, provider, challan_service):
        mock_outbox_cls.return_value.publish_event = AsyncMock()
        order = _make_bank_order()
        courier = _make_courier(CourierType.TCS, is_manual_dispatch=True)
        service = _make_service(mock_db, provider, challan_service, order, courier)

        await service.dispatch_manually(
            OrderKind.BANK,
            order.id,
            ManualDispatchRequest(courier_type=CourierType.TCS, tracking_number="779900001"),
        )

        assert order.status == OrderStatus.DISPATCHED

    @pytest.mark.asyncio
    async def test_api_courier_rejects_manual(self, mock_db, provider, challan_service):
        order = _make_bank_order()
        service = _make_service(mock_db, provider, challan_service, order, _make_courier(CourierType.LEOPARDS))

        with pytest.raises(ValidationException, match="does not support manual dispatch"):
            await service.dispatch_manually(
                OrderKind.BANK,
                order.id,
                ManualDispatchRequest(courier_type=CourierType.LEOPARDS, tracking_number="LP1"),
            )
        provider.book_shipment.assert_not_awaited()


# ---------------------------------------------------------------------------
# Cancel / track
# ---------------------------------------------------------------------------


class TestCancel:
    @pytest.mark.asyncio
    @patch("src.modules.shipment.dispatch_service.OutboxService")
    async def test_cancel_releases_order(self, mock_outbox_cls, mock_db, provider, challan_service):
        mock_outbox_cls.return_value.publish_event = AsyncMock()
        order = _make_bank_order(status=OrderStatus.DISPATCHED)
        courier = _make_courier(CourierType.LEOPARDS)
        shipment = _make_shipment(order, courier, status=ShipmentStatus.IN_TRANSIT)
        order.shipment_id = shipment.id
        service = _make_service(mock_db, provider, challan_service, order, courier)
        service.shipments.get_shipment = AsyncMock(return_value=shipment)

        result = await service.cancel(shipment.id)

        assert result.status == ShipmentStatus.CANCELLED
        assert result.delivery_remarks == "Cancelled by user"
        assert order.status == OrderStatus.PROCESSING
        assert order.shipment_id is None
        provider.cancel_shipment.assert_awaited_once_with(courier, "779912345", None)
        event = mock_outbox_cls.return_value.publish_event.call_args.kwargs
        assert event["event_type"] == EVENT_SHIPMENT_CANCELLED
        assert event["payload"]["from_status"] == "IN_TRANSIT"

    @pytest.mark.asyncio
    async def test_delivered_shipment_cannot_be_cancelled(self, mock_db, provider, challan_service):
        order = _make_bank_order(status=OrderStatus.DELIVERED)
        courier = _make_courier()
        shipment = _make_shipment(order, courier, status=ShipmentStatus.DELIVERED)
        service = _make_service(mock_db, provider, challan_service, order, courier)
        service.shipments.get_shipment = AsyncMock(return_value=shipment)

        with pytest.raises(InvalidStateException, match="DELIVERED"):
            await service.cancel(shipment.id, "Customer refused")
        provider.cancel_shipment.assert_not_awaited()


    @pytest.mark.asyncio
    async def test_already_cancelled_is_a_conflict(self, mock_db, provider, challan_service):
        order = _make_bank_order(status=OrderStatus.PROCESSING)
        courier = _make_courier()
        shipment = _make_shipment(order, courier, status=ShipmentStatus.CANCELLED)
        service = _make_service(mock_db, provider, challan_service, order, courier)
        service.shipments.get_shipment = AsyncMock(return_value=shipment)

        with pytest.raises(ConflictException, match="already cancelled"):
            await service.cancel(shipment.id)
        provider.cancel_shipment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_order_stops_before_courier_cancel(self, mock_db, provider, challan_service):
        order = _make_bank_order(status=OrderStatus.DISPATCHED)
        courier = _make_courier(CourierType.LEOPARDS)
        shipment = _make_shipment(order, courier)
        service = _make_service(mock_db, provider, challan_service, order, courier)
        service.shipments.get_shipment = AsyncMock(return_value=shipment)
        service.orders.get_order = AsyncMock(side_effect=NotFoundException("Bank order not found"))

        with pytest.raises(NotFoundException):
            await service.cancel(shipment.id)
        provider.cancel_shipment.assert_not_awaited()
        assert shipment.status == ShipmentStatus.BOOKED
    @pytest.mark.asyncio
    async def test_courier_refusal_leaves_shipment_untouched(self, mock_db, provider, challan_service):
        provider.cancel_shipment.return_value = CancellationResult(
            success=False, error="TCS cancellation API not yet implemented"
        )
        order = _make_bank_order(status=OrderStatus.DISPATCHED)
        courier = _make_courier()
        shipment = _make_shipment(order, courier)
        service = _make_service(mock_db, provider, challan_service, order, courier)
        service.shipments.get_shipment = AsyncMock(return_value=shipment)

        with pytest.raises(UpstreamFailureException, match="not yet implemented"):
            await service.cancel(shipment.id)
        assert shipment.status == ShipmentStatus.BOOKED
        assert order.status == OrderStatus.DISPATCHED


class TestTrack:
    @pytest.mark.asyncio
    async def test_track_returns_courier_snapshot(self, mock_db, provider, challan_service):
        order = _make_bank_order(status=OrderStatus.DISPATCHED)
        courier = _make_courier(CourierType.LEOPARDS)
        shipment = _make_shipment(order, courier)
        service = _make_service(mock_db, provider, challan_service, order, courier)
        service.shipments.get_shipment = AsyncMock(return_value=shipment)

        returned, result = await service.track(shipment.id)

        assert returned is shipment
        assert result.status == "In Transit"
        assert result.current_location == "Lahore"
