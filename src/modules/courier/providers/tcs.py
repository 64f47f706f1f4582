"""TCS courier provider: token-authenticated booking API."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime

import httpx

from src.config import settings
from src.models.courier import Courier
from src.modules.courier.constants import (
    TCS_DEFAULT_DIMENSION_CM,
    TCS_DEFAULT_WEIGHT_KG,
    TCS_SHIPMENT_DATE_FORMAT,
    TCS_TOKEN_EXPIRY_SKEW_SECONDS,
)
from src.modules.courier.formatting import city_code, normalize_phone, split_customer_name
from src.modules.courier.providers.base import (
    BookingRequest,
    BookingResult,
    CancellationResult,
    CourierGatewayError,
    CourierProviderBase,
    TrackingResult,
)

logger = logging.getLogger(__name__)


class TcsProvider(CourierProviderBase):
    def __init__(self) -> None:
        self.base_url = settings.tcs_base_url
        self.bearer_token = settings.tcs_bearer_token
        # username -> (access token, expiry as epoch seconds)
        self._tokens: dict[str, tuple[str, float]] = {}
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=settings.courier_request_timeout_seconds,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    @staticmethod
    def _credentials(courier: Courier) -> tuple[str, str]:
        username = courier.api_key or settings.tcs_username
        password = courier.api_secret or settings.tcs_password
        if not username or not password:
            raise CourierGatewayError(
                "TCS credentials not configured: set the username as the courier "
                "api_key and the password as the courier api_secret"
            )
        return username, password

    @staticmethod
    def _parse_expiry(raw_expiry: str | None) -> float:
        if raw_expiry:
            try:
                expiry = datetime.fromisoformat(str(raw_expiry).replace("Z", "+00:00"))
            except ValueError:
                logger.warning("Unparseable TCS token expiry %r, using configured TTL", raw_expiry)
            else:
                if expiry.tzinfo is None:
                    expiry = expiry.replace(tzinfo=UTC)
                return expiry.timestamp()
        return time.time() + settings.tcs_token_ttl_seconds

    async def _ensure_token(self, courier: Courier) -> str:
        """Return a cached access token, re-authenticating on miss or expiry."""
        username, password = self._credentials(courier)
        cached = self._tokens.get(username)
        if cached and time.time() < cached[1] - TCS_TOKEN_EXPIRY_SKEW_SECONDS:
            return cached[0]

        if not self.bearer_token:
            raise CourierGatewayError("TCS bearer token not configured")

        client = await self._get_client()
        try:
            response = await client.get(
                "/authentication/token",
                params={"username": username, "password": password},
                headers={"Authorization": f"Bearer {self.bearer_token}"},
            )
            response.raise_for_status()
            auth_data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CourierGatewayError(f"Failed to authenticate with TCS: {exc}") from exc

        token = auth_data.get("accesstoken")
        if not token:
            raise CourierGatewayError("TCS authentication response carried no access token")

        self._tokens[username] = (token, self._parse_expiry(auth_data.get("expiry")))
        logger.info("Fetched new TCS access token for %s", username)
        return token

    def _build_payload(self, courier: Courier, request: BookingRequest, access_token: str) -> dict:
        first_name, middle_name, last_name = split_customer_name(request.customer_name)
        weight = request.weight_kg or TCS_DEFAULT_WEIGHT_KG
        shipper_phone = courier.contact_phone or settings.tcs_shipper_phone
        return {
            "accesstoken": access_token,
            "consignmentno": "",
            "shipperinfo": {
                "tcsaccount": courier.api_secret or "",
                "shippername": settings.tcs_shipper_name,
                "address1": settings.tcs_shipper_address,
                "address2": "",
                "address3": "",
                "zip": "",
                "countrycode": "PK",
                "countryname": "Pakistan",
                "citycode": city_code(settings.tcs_shipper_city),
                "cityname": settings.tcs_shipper_city,
                "mobile": normalize_phone(shipper_phone),
            },
            "consigneeinfo": {
                "consigneecode": f"C{int(time.time() * 1000) % 1_000_000:06d}",
                "firstname": first_name,
                "middlename": middle_name,
                "lastname": last_name,
                "address1": request.customer_address,
                "address2": "",
                "address3": "",
                "zip": "",
                "countrycode": "PK",
                "countryname": "Pakistan",
                "citycode": city_code(request.customer_city),
                "cityname": request.customer_city,
                "email": request.customer_email or "",
                "areacode": "",
                "areaname": "",
                "blockcode": "",
                "blockname": "",
                "lat": "",
                "lng": "",
                "landmark": request.landmark or "",
                "mobile": normalize_phone(request.customer_phone),
                "consigneecnic": request.customer_cnic or "",
            },
            "vendorinfo": {
                "name": settings.tcs_vendor_name or settings.tcs_shipper_name,
                "address1": settings.tcs_vendor_address,
                "address2": "",
                "address3": "",
                "citycode": city_code(settings.tcs_vendor_city),
                "cityname": settings.tcs_vendor_city,
                "mobile": normalize_phone(settings.tcs_vendor_phone or shipper_phone),
            },
            "shipmentinfo": {
                "costcentercode": settings.tcs_cost_center_code,
                "referenceno": request.reference_number or "",
                "contentdesc": request.product_description,
                "servicecode": request.service_code or settings.tcs_default_service_code,
                "parametertype": "",
                "shipmentdate": datetime.now(UTC).strftime(TCS_SHIPMENT_DATE_FORMAT),
                "shippingtype": "",
                "currency": "PKR",
                "codamount": 0,
                "declaredvalue": float(request.declared_value or 0),
                "insuredvalue": 0,
                "transactiontype": "",
                "dsflag": "",
                "carrierslug": "",
                "weightinkg": weight,
                "pieces": request.quantity,
                "fragile": request.fragile,
                "remarks": request.special_instructions or "",
                "skus": [
                    {
                        "description": request.product_description,
                        "quantity": request.quantity,
                        "weight": weight,
                        "uom": "KG",
                        "unitprice": 0,
                        "declaredvalue": float(request.declared_value or 0),
                        "insuredvalue": 0,
                        "hscode": "",
                    }
                ],
                "piecedetail": [
                    {
                        "length": request.length_cm or TCS_DEFAULT_DIMENSION_CM,
                        "width": request.width_cm or TCS_DEFAULT_DIMENSION_CM,
                        "height": request.height_cm or TCS_DEFAULT_DIMENSION_CM,
                    }
                ],
                "vas": "",
            },
        }

    @staticmethod
    def _extract_error(data) -> str:
        """Pull a readable message out of the several TCS error shapes."""
        if isinstance(data, str):
            return data or "Unknown error occurred"
        if not isinstance(data, dict):
            return "Unknown error occurred"
        error_list = data.get("errorList")
        if isinstance(error_list, list) and error_list:
            return ", ".join(f"{e.get('key')}: {e.get('errormessage')}" for e in error_list)
        errors = data.get("error")
        if isinstance(errors, list) and errors:
            joined = ", ".join(": ".join(str(v) for v in e.values()) for e in errors if isinstance(e, dict))
            return f"{data.get('message', 'TCS error')}: {joined}"
        if data.get("message"):
            return str(data["message"])
        if isinstance(errors, str):
            return errors
        return "Failed to book shipment"

    async def book_shipment(self, courier: Courier, request: BookingRequest) -> BookingResult:
        logger.info("Booking TCS shipment for %s (ref %s)", request.customer_name, request.reference_number)
        try:
            access_token = await self._ensure_token(courier)
            payload = self._build_payload(courier, request, access_token)
            client = await self._get_client()
            response = await client.post(
                "/booking/create",
                json=payload,
                headers={"Authorization": f"Bearer {self.bearer_token}"},
            )
        except CourierGatewayError as exc:
            logger.error("TCS booking aborted: %s", exc)
            return BookingResult(success=False, error=str(exc))
        except httpx.HTTPError as exc:
            logger.error("TCS booking request failed: %s", exc)
            return BookingResult(success=False, error=f"Failed to connect to TCS API: {exc}")

        try:
            data = response.json()
        except ValueError:
            data = response.text

        if response.status_code == 401:
            # Force re-authentication on the next call
            self._tokens.pop(self._credentials(courier)[0], None)

        if response.is_success and isinstance(data, dict) and data.get("consignmentNo"):
            return BookingResult(
                success=True,
                tracking_number=data.get("traceid") or data["consignmentNo"],
                consignment_number=data["consignmentNo"],
                message=data.get("message") or "Shipment booked successfully",
                raw_response=data,
            )

        error = self._extract_error(data)
        logger.warning("TCS rejected booking (HTTP %d): %s", response.status_code, error)
        return BookingResult(success=False, error=error, raw_response=data)

    async def track_shipment(self, courier: Courier, tracking_number: str) -> TrackingResult:
        logger.warning("TCS tracking requested for %s but is not supported", tracking_number)
        return TrackingResult(success=False, error="TCS tracking API not yet implemented")

    async def cancel_shipment(
        self, courier: Courier, tracking_number: str, reason: str | None = None
    ) -> CancellationResult:
        logger.warning("TCS cancellation requested for %s but is not supported", tracking_number)
        return CancellationResult(success=False, error="TCS cancellation API not yet implemented")
