"""Provider factory: select the courier adapter for a courier record."""

from __future__ import annotations

from src.models.courier import Courier
from src.models.enums import CourierType
from src.modules.courier.constants import MANUAL_DISPATCH_TYPES
from src.modules.courier.providers.base import CourierProviderBase
from src.modules.courier.providers.leopards import LeopardsProvider
from src.modules.courier.providers.manual import ManualProvider
from src.modules.courier.providers.tcs import TcsProvider

_instances: dict[CourierType, CourierProviderBase] = {}


def get_provider(courier_type: CourierType) -> CourierProviderBase:
    if courier_type not in _instances:
        if courier_type == CourierType.TCS:
            _instances[courier_type] = TcsProvider()
        elif courier_type == CourierType.LEOPARDS:
            _instances[courier_type] = LeopardsProvider()
        elif courier_type in MANUAL_DISPATCH_TYPES:
            _instances[courier_type] = ManualProvider()
        else:
            raise ValueError(f"No adapter for courier type: {courier_type}")
    return _instances[courier_type]


def get_provider_for_courier(courier: Courier) -> CourierProviderBase:
    if courier.is_manual_dispatch:
        return get_provider(CourierType.SELF_DELIVERY)
    return get_provider(courier.courier_type)


async def close_all_providers() -> None:
    """Close httpx clients on all cached providers.

    Must be called before the event loop that created them goes away, as at
    the end of each asyncio.run() in Celery tasks and on app shutdown.
    """
    for provider in _instances.values():
        if getattr(provider, "_client", None) is not None:
            if not provider._client.is_closed:
                await provider._client.aclose()
            provider._client = None
