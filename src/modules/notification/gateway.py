"""WhatsApp contact-flow gateway (TheWhatBot API).

Each send upserts the customer as a contact, sets a few contact fields and
starts a flow that renders the message on WhatsApp.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from src.config import settings
from src.modules.courier.formatting import normalize_phone
from src.modules.notification.constants import (
    ACCESS_TOKEN_HEADER,
    CONTACTS_PATH,
    FIELD_CANCEL_URL,
    FIELD_CONFIRM_URL,
    FIELD_COURIER_NAME,
    FIELD_FULL_NAME,
    FIELD_ORDER_ID,
    FIELD_ORDER_ITEMS,
    FIELD_TRACKING_NUMBER,
)

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    message: str
    data: Any = None


class WhatsAppGateway:
    def __init__(
        self,
        base_url: str | None = None,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.whatsapp_base_url).rstrip("/")
        self.access_token = access_token if access_token is not None else settings.whatsapp_access_token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=settings.courier_request_timeout_seconds,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def send_flow(
        self,
        phone: str,
        first_name: str,
        fields: dict[str, str],
        flow_id: str,
    ) -> SendResult:
        """Set ``fields`` on the contact and start ``flow_id``. Never raises."""
        if not self.access_token:
            return SendResult(success=False, message="WhatsApp access token not configured")
        if not flow_id:
            return SendResult(success=False, message="WhatsApp flow ID not configured")

        body = {
            "phone": normalize_phone(phone),
            "email": "",
            "first_name": first_name,
            "last_name": "",
            "actions": [
                {"action": "set_field_value", "field_name": name, "value": value}
                for name, value in fields.items()
            ]
            + [{"action": "send_flow", "flow_id": flow_id}],
        }

        try:
            client = await self._get_client()
            response = await client.post(
                f"{self.base_url}{CONTACTS_PATH}",
                json=body,
                headers={ACCESS_TOKEN_HEADER: self.access_token},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            try:
                detail = exc.response.json().get("message")
            except ValueError:
                detail = None
            error = detail or str(exc)
            logger.error(
                "WhatsApp API error %s for %s: %s", exc.response.status_code, body["phone"], error
            )
            return SendResult(success=False, message=f"Failed to send WhatsApp message: {error}")
        except httpx.HTTPError as exc:
            logger.error("WhatsApp request failed for %s: %s", body["phone"], exc)
            return SendResult(success=False, message=f"Failed to send WhatsApp message: {exc}")

        logger.info("WhatsApp flow %s sent to %s", flow_id, body["phone"])
        try:
            data = response.json()
        except ValueError:
            data = response.text
        return SendResult(success=True, message="WhatsApp message sent successfully", data=data)

    async def send_dispatch_notification(
        self,
        phone: str,
        customer_name: str,
        courier_name: str,
        tracking_number: str,
    ) -> SendResult:
        return await self.send_flow(
            phone,
            customer_name,
            {FIELD_COURIER_NAME: courier_name, FIELD_TRACKING_NUMBER: tracking_number},
            settings.whatsapp_dispatch_flow_id,
        )

    async def send_order_confirmation(
        self,
        phone: str,
        customer_name: str,
        order_reference: str,
        product: str,
        confirmation_url: str,
        cancellation_url: str,
    ) -> SendResult:
        return await self.send_flow(
            phone,
            customer_name,
            {
                FIELD_ORDER_ID: order_reference,
                FIELD_FULL_NAME: customer_name,
                FIELD_ORDER_ITEMS: product,
                FIELD_CONFIRM_URL: confirmation_url,
                FIELD_CANCEL_URL: cancellation_url,
            },
            settings.whatsapp_confirmation_flow_id,
        )
