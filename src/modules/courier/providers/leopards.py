"""Leopards courier provider: API key/secret REST booking API."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from src.config import settings
from src.models.courier import Courier
from src.modules.courier.constants import DEFAULT_CANCEL_REASON, LEOPARDS_SUCCESS_STATUS
from src.modules.courier.providers.base import (
    BookingRequest,
    BookingResult,
    CancellationResult,
    CourierGatewayError,
    CourierProviderBase,
    TrackingResult,
)

logger = logging.getLogger(__name__)


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _response_error(data, default: str) -> str:
    if isinstance(data, dict):
        return data.get("message") or data.get("error") or default
    return default


class LeopardsProvider(CourierProviderBase):
    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=settings.courier_request_timeout_seconds,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    @staticmethod
    def _endpoint(courier: Courier, path: str) -> str:
        base_url = courier.api_url or settings.leopards_base_url
        if not base_url:
            raise CourierGatewayError("Leopards API URL not configured for this courier")
        return f"{base_url.rstrip('/')}{path}"

    @staticmethod
    def _auth_headers(courier: Courier) -> dict[str, str]:
        headers = {}
        if courier.api_key:
            headers["X-API-Key"] = courier.api_key
        if courier.api_secret:
            headers["X-API-Secret"] = courier.api_secret
        return headers

    async def _request(self, courier: Courier, method: str, path: str, **kwargs):
        client = await self._get_client()
        response = await client.request(
            method,
            self._endpoint(courier, path),
            headers=self._auth_headers(courier),
            **kwargs,
        )
        try:
            return response.json()
        except ValueError:
            return response.text

    async def book_shipment(self, courier: Courier, request: BookingRequest) -> BookingResult:
        logger.info("Booking Leopards shipment for %s (ref %s)", request.customer_name, request.reference_number)
        payload = {
            "consignee_name": request.customer_name,
            "consignee_phone": request.customer_phone,
            "consignee_address": request.customer_address,
            "consignee_city": request.customer_city,
            "product_description": request.product_description,
            "pieces": request.quantity,
            "cod_amount": float(request.declared_value or 0),
            "special_instructions": request.special_instructions or "",
            "reference_number": request.reference_number or "",
        }
        try:
            data = await self._request(courier, "POST", "/api/book-packet", json=payload)
        except (CourierGatewayError, httpx.HTTPError) as exc:
            logger.error("Leopards booking failed: %s", exc)
            return BookingResult(success=False, error=str(exc) or "Unknown error occurred")

        if isinstance(data, dict) and data.get("status") == LEOPARDS_SUCCESS_STATUS:
            return BookingResult(
                success=True,
                tracking_number=data.get("tracking_number") or data.get("cn_number"),
                consignment_number=data.get("cn_number"),
                message=data.get("message") or "Shipment booked successfully",
                raw_response=data,
            )
        error = _response_error(data, "Failed to book shipment")
        logger.warning("Leopards rejected booking: %s", error)
        return BookingResult(success=False, error=error, raw_response=data)

    async def track_shipment(self, courier: Courier, tracking_number: str) -> TrackingResult:
        try:
            data = await self._request(
                courier, "GET", "/api/track", params={"tracking_number": tracking_number}
            )
        except (CourierGatewayError, httpx.HTTPError) as exc:
            logger.error("Leopards tracking failed for %s: %s", tracking_number, exc)
            return TrackingResult(success=False, error=str(exc) or "Unknown error occurred")

        if isinstance(data, dict) and data.get("status") == LEOPARDS_SUCCESS_STATUS:
            return TrackingResult(
                success=True,
                status=data.get("shipment_status"),
                current_location=data.get("current_location"),
                last_update=_parse_datetime(data.get("last_update")),
                delivery_date=_parse_datetime(data.get("delivery_date")),
                remarks=data.get("remarks"),
                raw_response=data,
            )
        return TrackingResult(
            success=False,
            error=_response_error(data, "Failed to track shipment"),
            raw_response=data,
        )

    async def cancel_shipment(
        self, courier: Courier, tracking_number: str, reason: str | None = None
    ) -> CancellationResult:
        payload = {
            "tracking_number": tracking_number,
            "cancel_reason": reason or DEFAULT_CANCEL_REASON,
        }
        try:
            data = await self._request(courier, "POST", "/api/cancel", json=payload)
        except (CourierGatewayError, httpx.HTTPError) as exc:
            logger.error("Leopards cancellation failed for %s: %s", tracking_number, exc)
            return CancellationResult(success=False, error=str(exc) or "Unknown error occurred")

        if isinstance(data, dict) and data.get("status") == LEOPARDS_SUCCESS_STATUS:
            return CancellationResult(
                success=True,
                message=data.get("message") or "Shipment cancelled successfully",
                raw_response=data,
            )
        return CancellationResult(
            success=False,
            error=_response_error(data, "Failed to cancel shipment"),
            raw_response=data,
        )
