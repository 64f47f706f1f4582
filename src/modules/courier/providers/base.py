"""Abstract base class and value types for courier booking providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.models.courier import Courier


class CourierGatewayError(Exception):
    """Raised inside a provider for configuration or authentication problems.

    Providers convert it into a failed result before returning; it never
    crosses the provider boundary.
    """


@dataclass
class BookingRequest:
    """Provider-agnostic description of one parcel to book."""

    customer_name: str
    customer_phone: str
    customer_address: str
    customer_city: str
    product_description: str
    quantity: int = 1
    customer_cnic: str | None = None
    customer_email: str | None = None
    declared_value: Decimal | None = None
    reference_number: str | None = None
    special_instructions: str | None = None
    weight_kg: float | None = None
    fragile: bool = False
    landmark: str | None = None
    length_cm: float | None = None
    width_cm: float | None = None
    height_cm: float | None = None
    service_code: str | None = None
    # Operator-supplied identifiers for manual dispatch
    tracking_number: str | None = None
    consignment_number: str | None = None


@dataclass
class BookingResult:
    success: bool
    tracking_number: str | None = None
    consignment_number: str | None = None
    message: str | None = None
    error: str | None = None
    raw_response: Any = None


@dataclass
class TrackingResult:
    success: bool
    status: str | None = None
    current_location: str | None = None
    last_update: datetime | None = None
    delivery_date: datetime | None = None
    remarks: str | None = None
    error: str | None = None
    raw_response: Any = None


@dataclass
class CancellationResult:
    success: bool
    message: str | None = None
    error: str | None = None
    raw_response: Any = field(default=None, repr=False)


class CourierProviderBase(ABC):
    """Booking, tracking and cancellation for one courier integration.

    Implementations never raise for courier-side rejections or transport
    failures; they report them through ``success=False`` results.
    """

    @abstractmethod
    async def book_shipment(self, courier: Courier, request: BookingRequest) -> BookingResult:
        """Book a parcel and return the courier-assigned identifiers."""

    @abstractmethod
    async def track_shipment(self, courier: Courier, tracking_number: str) -> TrackingResult:
        """Return the courier's latest status snapshot for a parcel."""

    @abstractmethod
    async def cancel_shipment(
        self, courier: Courier, tracking_number: str, reason: str | None = None
    ) -> CancellationResult:
        """Ask the courier to cancel a booked parcel."""
