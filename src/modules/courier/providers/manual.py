"""Manual courier provider: operator-entered tracking data, no network calls."""

from __future__ import annotations

import logging

from src.models.courier import Courier
from src.modules.courier.providers.base import (
    BookingRequest,
    BookingResult,
    CancellationResult,
    CourierProviderBase,
    TrackingResult,
)

logger = logging.getLogger(__name__)


class ManualProvider(CourierProviderBase):
    async def book_shipment(self, courier: Courier, request: BookingRequest) -> BookingResult:
        if not request.tracking_number:
            return BookingResult(success=False, error="Manual dispatch requires a tracking number")
        logger.info(
            "Recorded manual %s booking %s", courier.courier_type.value, request.tracking_number
        )
        return BookingResult(
            success=True,
            tracking_number=request.tracking_number,
            consignment_number=request.consignment_number,
            message="Manual dispatch recorded",
            raw_response={"manual": True, "remarks": request.special_instructions},
        )

    async def track_shipment(self, courier: Courier, tracking_number: str) -> TrackingResult:
        return TrackingResult(
            success=False,
            error=f"Tracking is not available for manual courier {courier.courier_name}",
        )

    async def cancel_shipment(
        self, courier: Courier, tracking_number: str, reason: str | None = None
    ) -> CancellationResult:
        return CancellationResult(success=True, message="Manual shipment cancelled")
