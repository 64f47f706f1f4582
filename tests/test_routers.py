"""Router tests: route registration, request wiring and the error envelope.

Services are patched at the router module; the DB session is the mocked
one from conftest.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from src.exceptions import ConflictException, NotFoundException, UpstreamFailureException
from src.models.enums import EventStatus, OrderKind, PrintStatus, ShipmentStatus
from src.models.delivery_challan import DeliveryChallan
from src.models.event_outbox import EventOutbox
from src.models.purchase_order import PurchaseOrder
from src.models.shipment import Shipment
from src.modules.challan.router import router as challan_router
from src.modules.events.router import router as events_router
from src.modules.notification.router import router as notification_router
from src.modules.purchase_order.router import router as purchase_order_router
from src.modules.shipment.router import router as shipment_router


def _routes(router) -> set[tuple[str, str]]:
    return {(method, r.path) for r in router.routes for method in r.methods}


def _make_shipment(**overrides) -> Shipment:
    fields = {
        "id": uuid.uuid4(),
        "bank_order_id": uuid.uuid4(),
        "courier_id": uuid.uuid4(),
        "tracking_number": "779912345",
        "status": ShipmentStatus.BOOKED,
        "customer_name": "Muhammad Ali",
        "customer_phone": "03001234567",
        "customer_address": "House 12",
        "customer_city": "Lahore",
        "product_description": "Air Fryer 4.5L - (Qty: 1)",
        "quantity": 1,
        "booking_date": datetime(2026, 3, 2, 9, 30, tzinfo=UTC),
    }
    fields.update(overrides)
    return Shipment(**fields)


def _make_challan() -> DeliveryChallan:
    return DeliveryChallan(
        id=uuid.uuid4(),
        challan_number="DC-2026-0001",
        shipment_id=uuid.uuid4(),
        bank_order_id=uuid.uuid4(),
        customer_name="Muhammad Ali",
        customer_phone="03001234567",
        customer_address="House 12",
        customer_city="Lahore",
        product_name="Air Fryer 4.5L",
        quantity=1,
        courier_name="TCS",
        tracking_number="779912345",
        challan_date=datetime.now(UTC),
        dispatch_date=datetime.now(UTC),
        print_status=PrintStatus.NOT_PRINTED,
        print_count=0,
    )


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


class TestRouterPaths:
    def test_shipment_routes(self):
        routes = _routes(shipment_router)
        assert {
            ("POST", "/shipments/dispatch/bank-order/{order_id}"),
            ("POST", "/shipments/dispatch/bip-order/{order_id}"),
            ("POST", "/shipments/dispatch/bank-order/{order_id}/manual"),
            ("POST", "/shipments/dispatch/bip-order/{order_id}/manual"),
            ("GET", "/shipments/"),
            ("GET", "/shipments/tracking/{tracking_number}"),
            ("GET", "/shipments/{shipment_id}"),
            ("GET", "/shipments/{shipment_id}/track"),
            ("PATCH", "/shipments/{shipment_id}/status"),
            ("POST", "/shipments/{shipment_id}/cancel"),
        } <= routes

    def test_challan_routes(self):
        routes = _routes(challan_router)
        assert {
            ("POST", "/delivery-challans/bank-order/{order_id}"),
            ("POST", "/delivery-challans/bip-order/{order_id}"),
            ("GET", "/delivery-challans/"),
            ("GET", "/delivery-challans/bank-order/{order_id}"),
            ("GET", "/delivery-challans/bip-order/{order_id}"),
            ("GET", "/delivery-challans/{challan_id}"),
            ("GET", "/delivery-challans/{challan_id}/download"),
            ("POST", "/delivery-challans/{challan_id}/regenerate-pdf"),
            ("POST", "/delivery-challans/bulk-download"),
            ("POST", "/delivery-challans/mark-printed"),
        } <= routes

    def test_purchase_order_routes(self):
        routes = _routes(purchase_order_router)
        assert {
            ("POST", "/purchase-orders/"),
            ("POST", "/purchase-orders/bulk-create"),
            ("POST", "/purchase-orders/combine-preview"),
            ("POST", "/purchase-orders/merge"),
            ("GET", "/purchase-orders/"),
            ("GET", "/purchase-orders/combinable/{vendor_id}"),
            ("GET", "/purchase-orders/{po_id}"),
            ("GET", "/purchase-orders/{po_id}/download"),
            ("PATCH", "/purchase-orders/bulk-update"),
            ("PATCH", "/purchase-orders/{po_id}"),
            ("POST", "/purchase-orders/{po_id}/cancel"),
            ("DELETE", "/purchase-orders/{po_id}"),
        } <= routes

    def test_notification_and_event_routes(self):
        assert ("POST", "/order-notifications/confirmations") in _routes(notification_router)
        assert ("POST", "/order-notifications/confirmations/reply") in _routes(notification_router)
        assert ("GET", "/events/failed") in _routes(events_router)
        assert ("POST", "/events/{event_id}/resolve") in _routes(events_router)


# ---------------------------------------------------------------------------
# Request handling
# ---------------------------------------------------------------------------


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, async_client, mock_session):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "ok"}
        assert response.headers["X-Request-ID"]
        mock_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_database_down(self, async_client, mock_session):
        mock_session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))

        response = await async_client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "unavailable"


class TestErrorEnvelope:
    @pytest.mark.asyncio
    @patch("src.modules.shipment.router.ShipmentService")
    async def test_not_found(self, mock_svc_cls, async_client):
        shipment_id = uuid.uuid4()
        mock_svc_cls.return_value.get_shipment = AsyncMock(
            side_effect=NotFoundException(f"Shipment {shipment_id} not found")
        )

        response = await async_client.get(
            f"/api/v1/shipments/{shipment_id}", headers={"X-Request-ID": "req-123"}
        )

        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "code": "NOT_FOUND",
                "message": f"Shipment {shipment_id} not found",
                "retryable": False,
                "details": [],
                "requestId": "req-123",
            }
        }
        assert response.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    @patch("src.modules.shipment.router.DispatchService")
    async def test_upstream_failure_is_retryable(self, mock_svc_cls, async_client):
        mock_svc_cls.return_value.dispatch = AsyncMock(
            side_effect=UpstreamFailureException("TCS booking failed: Invalid city")
        )

        response = await async_client.post(
            f"/api/v1/shipments/dispatch/bank-order/{uuid.uuid4()}", json={"courier_type": "TCS"}
        )

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "UPSTREAM_FAILURE"
        assert error["retryable"] is True

    @pytest.mark.asyncio
    async def test_validation_error(self, async_client):
        response = await async_client.post(
            "/api/v1/purchase-orders/combine-preview", json={"po_ids": [str(uuid.uuid4())]}
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.po_ids"


class TestShipmentEndpoints:
    @pytest.mark.asyncio
    @patch("src.modules.shipment.router.DispatchService")
    async def test_dispatch_bip_order(self, mock_svc_cls, async_client):
        order_id = uuid.uuid4()
        shipment = _make_shipment(bank_order_id=None, bip_order_id=order_id)
        mock_svc_cls.return_value.dispatch = AsyncMock(return_value=shipment)

        response = await async_client.post(
            f"/api/v1/shipments/dispatch/bip-order/{order_id}",
            json={"courier_type": "LEOPARDS", "fragile": True},
        )

        assert response.status_code == 201
        assert response.json()["tracking_number"] == "779912345"
        kind, called_id, body = mock_svc_cls.return_value.dispatch.call_args.args
        assert (kind, called_id) == (OrderKind.BIP, order_id)
        assert body.fragile is True

    @pytest.mark.asyncio
    @patch("src.modules.shipment.router.DispatchService")
    async def test_cancel_conflict(self, mock_svc_cls, async_client):
        mock_svc_cls.return_value.cancel = AsyncMock(
            side_effect=ConflictException("Cannot cancel a delivered shipment")
        )

        response = await async_client.post(f"/api/v1/shipments/{uuid.uuid4()}/cancel")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"


class TestChallanEndpoints:
    @pytest.mark.asyncio
    @patch("src.modules.challan.router.ChallanService")
    async def test_download_streams_pdf(self, mock_svc_cls, async_client):
        challan = _make_challan()
        mock_svc_cls.return_value.download = AsyncMock(return_value=(challan, b"%PDF-1.4 body"))

        response = await async_client.get(f"/api/v1/delivery-challans/{challan.id}/download")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="DC-2026-0001.pdf"' in response.headers["content-disposition"]
        assert response.content == b"%PDF-1.4 body"

    @pytest.mark.asyncio
    async def test_bulk_download_requires_selection(self, async_client):
        response = await async_client.post("/api/v1/delivery-challans/bulk-download", json={})

        assert response.status_code == 422

    @pytest.mark.asyncio
    @patch("src.modules.challan.router.ChallanService")
    async def test_create_passes_serial_override(self, mock_svc_cls, async_client):
        challan = _make_challan()
        mock_svc_cls.return_value.create_for_order = AsyncMock(return_value=challan)
        order_id = uuid.uuid4()

        response = await async_client.post(
            f"/api/v1/delivery-challans/bank-order/{order_id}",
            json={"product_serial_number": "SN-1"},
        )

        assert response.status_code == 201
        assert response.json()["challan_number"] == "DC-2026-0001"
        mock_svc_cls.return_value.create_for_order.assert_awaited_once_with(
            OrderKind.BANK, order_id, serial_override="SN-1", remarks=None
        )


class TestPurchaseOrderEndpoints:
    @pytest.mark.asyncio
    @patch("src.modules.purchase_order.router.PurchaseOrderService")
    async def test_download_streams_pdf(self, mock_svc_cls, async_client):
        po = PurchaseOrder(id=uuid.uuid4(), po_number="PO-2026-0007")
        mock_svc_cls.return_value.download_pdf = AsyncMock(return_value=(po, b"%PDF-1.4 po"))

        response = await async_client.get(f"/api/v1/purchase-orders/{po.id}/download")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="PO-2026-0007.pdf"' in response.headers["content-disposition"]
        assert response.content == b"%PDF-1.4 po"
        mock_svc_cls.return_value.download_pdf.assert_awaited_once_with(po.id)

    @pytest.mark.asyncio
    @patch("src.modules.purchase_order.router.PurchaseOrderService")
    async def test_download_missing(self, mock_svc_cls, async_client):
        mock_svc_cls.return_value.download_pdf = AsyncMock(
            side_effect=NotFoundException("Purchase order not found")
        )

        response = await async_client.get(f"/api/v1/purchase-orders/{uuid.uuid4()}/download")

        assert response.status_code == 404


class TestEventEndpoints:
    @pytest.mark.asyncio
    async def test_resolve_unknown_event(self, async_client, mock_session):
        mock_session.get.return_value = None

        response = await async_client.post(f"/api/v1/events/{uuid.uuid4()}/resolve")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_resolve_failed_event(self, async_client, mock_session):
        event = EventOutbox(
            id=uuid.uuid4(),
            event_type="delivery_challan.auto_create_failed",
            aggregate_type="shipment",
            aggregate_id=str(uuid.uuid4()),
            payload={},
            status=EventStatus.FAILED,
            retry_count=0,
            max_retries=5,
        )
        mock_session.get.return_value = event

        response = await async_client.post(f"/api/v1/events/{event.id}/resolve")

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["processed_at"] is not None
