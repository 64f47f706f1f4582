"""Centralized v1 API router: all module routers are included here."""

from fastapi import APIRouter

from src.modules.challan.router import router as challan_router
from src.modules.events.router import router as events_router
from src.modules.notification.router import router as notification_router
from src.modules.purchase_order.router import router as purchase_order_router
from src.modules.shipment.router import router as shipment_router
from src.schemas.responses import ErrorResponse

_error = {"model": ErrorResponse}

v1_router = APIRouter(
    prefix="/api/v1",
    responses={404: _error, 409: _error, 422: _error, 502: _error},
)
v1_router.include_router(shipment_router)
v1_router.include_router(challan_router)
v1_router.include_router(purchase_order_router)
v1_router.include_router(notification_router)
v1_router.include_router(events_router)
