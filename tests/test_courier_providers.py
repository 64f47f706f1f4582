"""Unit tests for courier providers: TCS, Leopards, manual and the factory."""

from __future__ import annotations

import json
from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest

from src.models.enums import CourierType
from src.modules.courier.providers.base import BookingRequest
from src.modules.courier.providers.factory import (
    close_all_providers,
    get_provider,
    get_provider_for_courier,
)
from src.modules.courier.providers.leopards import LeopardsProvider
from src.modules.courier.providers.manual import ManualProvider
from src.modules.courier.providers.tcs import TcsProvider

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_courier(
    courier_type=CourierType.TCS,
    api_key="tcs-user",
    api_secret="tcs-pass",
    api_url=None,
    is_manual_dispatch=False,
):
    courier = MagicMock()
    courier.courier_type = courier_type
    courier.courier_name = courier_type.value.title()
    courier.api_key = api_key
    courier.api_secret = api_secret
    courier.api_url = api_url
    courier.contact_phone = None
    courier.is_manual_dispatch = is_manual_dispatch
    return courier


def _booking_request(**overrides) -> BookingRequest:
    fields = {
        "customer_name": "Muhammad Ali Khan",
        "customer_phone": "0300-1234567",
        "customer_address": "House 12, Street 4, DHA Phase 5",
        "customer_city": "Lahore",
        "product_description": "Air Fryer 4.5L - (Qty: 1)",
        "quantity": 1,
        "declared_value": Decimal("32000.00"),
        "reference_number": "PO-2026-00001",
    }
    fields.update(overrides)
    return BookingRequest(**fields)


def _tcs_provider(handler) -> TcsProvider:
    provider = TcsProvider()
    provider.bearer_token = "static-bearer"
    provider._client = httpx.AsyncClient(
        base_url=provider.base_url, transport=httpx.MockTransport(handler)
    )
    return provider


def _leopards_provider(handler) -> LeopardsProvider:
    provider = LeopardsProvider()
    provider._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return provider


TOKEN_RESPONSE = {"accesstoken": "session-token", "expiry": "2099-01-01T00:00:00Z"}


# ---------------------------------------------------------------------------
# TCS
# ---------------------------------------------------------------------------


class TestTcsBooking:
    @pytest.mark.asyncio
    async def test_books_with_fetched_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/authentication/token"):
                assert request.url.params["username"] == "tcs-user"
                assert request.headers["Authorization"] == "Bearer static-bearer"
                return httpx.Response(200, json=TOKEN_RESPONSE)
            seen["payload"] = json.loads(request.content)
            return httpx.Response(
                200, json={"consignmentNo": "779912345", "traceid": "TRC-1", "message": "Booked"}
            )

        provider = _tcs_provider(handler)
        result = await provider.book_shipment(_make_courier(), _booking_request())

        assert result.success is True
        assert result.tracking_number == "TRC-1"
        assert result.consignment_number == "779912345"
        payload = seen["payload"]
        assert payload["accesstoken"] == "session-token"
        assert payload["consigneeinfo"]["firstname"] == "Muhammad"
        assert payload["consigneeinfo"]["lastname"] == "Khan"
        assert payload["consigneeinfo"]["mobile"] == "+923001234567"
        assert payload["consigneeinfo"]["citycode"] == "LHE"
        assert payload["shipmentinfo"]["referenceno"] == "PO-2026-00001"
        assert payload["shipmentinfo"]["declaredvalue"] == 32000.0

    @pytest.mark.asyncio
    async def test_token_is_cached_between_bookings(self):
        calls = {"auth": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/authentication/token"):
                calls["auth"] += 1
                return httpx.Response(200, json=TOKEN_RESPONSE)
            return httpx.Response(200, json={"consignmentNo": "779912345"})

        provider = _tcs_provider(handler)
        courier = _make_courier()
        await provider.book_shipment(courier, _booking_request())
        result = await provider.book_shipment(courier, _booking_request())

        assert calls["auth"] == 1
        # No trace id: the consignment number doubles as tracking number
        assert result.tracking_number == "779912345"

    @pytest.mark.asyncio
    async def test_unauthorized_response_drops_cached_token(self):
        calls = {"auth": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/authentication/token"):
                calls["auth"] += 1
                return httpx.Response(200, json=TOKEN_RESPONSE)
            return httpx.Response(401, json={"message": "Token expired"})

        provider = _tcs_provider(handler)
        courier = _make_courier()
        first = await provider.book_shipment(courier, _booking_request())
        await provider.book_shipment(courier, _booking_request())

        assert first.success is False
        assert first.error == "Token expired"
        assert calls["auth"] == 2

    @pytest.mark.asyncio
    async def test_error_list_is_flattened(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/authentication/token"):
                return httpx.Response(200, json=TOKEN_RESPONSE)
            return httpx.Response(
                400,
                json={"errorList": [{"key": "mobile", "errormessage": "is invalid"}]},
            )

        result = await _tcs_provider(handler).book_shipment(_make_courier(), _booking_request())

        assert result.success is False
        assert result.error == "mobile: is invalid"

    @pytest.mark.asyncio
    async def test_missing_credentials_fail_without_network(self, monkeypatch):
        monkeypatch.setattr("src.modules.courier.providers.tcs.settings.tcs_username", "")
        monkeypatch.setattr("src.modules.courier.providers.tcs.settings.tcs_password", "")

        def handler(request: httpx.Request) -> httpx.Response:
            pytest.fail("no request expected")

        result = await _tcs_provider(handler).book_shipment(
            _make_courier(api_key=None, api_secret=None), _booking_request()
        )

        assert result.success is False
        assert "credentials not configured" in result.error

    @pytest.mark.asyncio
    async def test_missing_bearer_token(self):
        provider = _tcs_provider(lambda request: httpx.Response(200, json=TOKEN_RESPONSE))
        provider.bearer_token = ""

        result = await provider.book_shipment(_make_courier(), _booking_request())

        assert result.success is False
        assert "bearer token" in result.error

    @pytest.mark.asyncio
    async def test_transport_error_is_reported(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/authentication/token"):
                return httpx.Response(200, json=TOKEN_RESPONSE)
            raise httpx.ConnectError("connection refused", request=request)

        result = await _tcs_provider(handler).book_shipment(_make_courier(), _booking_request())

        assert result.success is False
        assert result.error.startswith("Failed to connect to TCS API")


class TestTcsUnsupportedOperations:
    @pytest.mark.asyncio
    async def test_tracking_not_implemented(self):
        result = await TcsProvider().track_shipment(_make_courier(), "779912345")
        assert result.success is False
        assert "not yet implemented" in result.error

    @pytest.mark.asyncio
    async def test_cancellation_not_implemented(self):
        result = await TcsProvider().cancel_shipment(_make_courier(), "779912345")
        assert result.success is False


# ---------------------------------------------------------------------------
# Leopards
# ---------------------------------------------------------------------------


class TestLeopards:
    @pytest.mark.asyncio
    async def test_book_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["payload"] = json.loads(request.content)
            return httpx.Response(
                200, json={"status": "success", "tracking_number": "LP123", "cn_number": "CN123"}
            )

        courier = _make_courier(
            CourierType.LEOPARDS, api_key="lp-key", api_secret="lp-secret", api_url="https://lp.test/"
        )
        result = await _leopards_provider(handler).book_shipment(courier, _booking_request())

        assert result.success is True
        assert result.tracking_number == "LP123"
        assert result.consignment_number == "CN123"
        assert seen["url"] == "https://lp.test/api/book-packet"
        assert seen["headers"]["X-API-Key"] == "lp-key"
        assert seen["headers"]["X-API-Secret"] == "lp-secret"
        assert seen["payload"]["consignee_city"] == "Lahore"

    @pytest.mark.asyncio
    async def test_book_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "error", "message": "Invalid city"})

        courier = _make_courier(CourierType.LEOPARDS, api_url="https://lp.test")

        result = await _leopards_provider(handler).book_shipment(courier, _booking_request())

        assert result.success is False
        assert result.error == "Invalid city"

    @pytest.mark.asyncio
    async def test_book_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        courier = _make_courier(CourierType.LEOPARDS, api_url="https://lp.test")
        result = await _leopards_provider(handler).book_shipment(courier, _booking_request())

        assert result.success is False
        assert result.error == "timed out"

    @pytest.mark.asyncio
    async def test_track_parses_dates(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["tracking_number"] == "LP123"
            return httpx.Response(
                200,
                json={
                    "status": "success",
                    "shipment_status": "In Transit",
                    "current_location": "Lahore Hub",
                    "last_update": "2026-03-01T10:30:00Z",
                    "delivery_date": None,
                },
            )

        courier = _make_courier(CourierType.LEOPARDS, api_url="https://lp.test")
        result = await _leopards_provider(handler).track_shipment(courier, "LP123")

        assert result.success is True
        assert result.status == "In Transit"
        assert result.current_location == "Lahore Hub"
        assert result.last_update.year == 2026
        assert result.delivery_date is None

    @pytest.mark.asyncio
    async def test_cancel_sends_default_reason(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "success"})

        courier = _make_courier(CourierType.LEOPARDS, api_url="https://lp.test")
        result = await _leopards_provider(handler).cancel_shipment(courier, "LP123")

        assert result.success is True
        assert seen["payload"] == {"tracking_number": "LP123", "cancel_reason": "Cancelled by customer"}


# ---------------------------------------------------------------------------
# Manual
# ---------------------------------------------------------------------------


class TestManualProvider:
    @pytest.mark.asyncio
    async def test_echoes_operator_identifiers(self):
        courier = _make_courier(CourierType.SELF_DELIVERY)
        request = _booking_request(
            tracking_number="SD-001", consignment_number="SD-CN-001", special_instructions="Handed to rider"
        )

        result = await ManualProvider().book_shipment(courier, request)

        assert result.success is True
        assert result.tracking_number == "SD-001"
        assert result.consignment_number == "SD-CN-001"
        assert result.raw_response == {"manual": True, "remarks": "Handed to rider"}

    @pytest.mark.asyncio
    async def test_requires_tracking_number(self):
        result = await ManualProvider().book_shipment(
            _make_courier(CourierType.TCS_OVERLAND), _booking_request()
        )
        assert result.success is False

    @pytest.mark.asyncio
    async def test_cancel_always_succeeds(self):
        result = await ManualProvider().cancel_shipment(_make_courier(CourierType.SELF_DELIVERY), "SD-001")
        assert result.success is True


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestProviderFactory:
    def test_provider_per_type(self):
        assert isinstance(get_provider(CourierType.TCS), TcsProvider)
        assert isinstance(get_provider(CourierType.LEOPARDS), LeopardsProvider)
        assert isinstance(get_provider(CourierType.TCS_OVERLAND), ManualProvider)
        assert isinstance(get_provider(CourierType.SELF_DELIVERY), ManualProvider)

    def test_instances_are_cached(self):
        assert get_provider(CourierType.LEOPARDS) is get_provider(CourierType.LEOPARDS)

    def test_manual_flag_overrides_courier_type(self):
        courier = _make_courier(CourierType.TCS, is_manual_dispatch=True)
        assert isinstance(get_provider_for_courier(courier), ManualProvider)

    @pytest.mark.asyncio
    async def test_close_all_providers_closes_clients(self):
        provider = get_provider(CourierType.LEOPARDS)
        client = await provider._get_client()

        await close_all_providers()

        assert client.is_closed
        assert provider._client is None
