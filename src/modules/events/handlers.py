"""EventHandlerRegistry: maps outbox event types to their side effects."""

import logging
from collections import defaultdict
from collections.abc import Callable

logger = logging.getLogger(__name__)


class EventHandlerRegistry:
    """Process-wide registry of synchronous handlers keyed by event type.

    A handler takes the event payload dict. Registering the same handler
    twice for one event type is a no-op, so module-level registration is
    safe under repeated imports.
    """

    _handlers: dict[str, list[Callable[[dict], None]]] = defaultdict(list)

    @classmethod
    def register(cls, event_type: str, handler: Callable[[dict], None]) -> None:
        if handler in cls._handlers[event_type]:
            return
        cls._handlers[event_type].append(handler)
        logger.info("Registered %s for %s", handler.__name__, event_type)

    @classmethod
    def get_handlers(cls, event_type: str) -> list[Callable[[dict], None]]:
        return list(cls._handlers.get(event_type, []))

    @classmethod
    def dispatch(cls, event_type: str, payload: dict) -> list[dict]:
        """Run every handler for ``event_type``.

        One failing handler does not stop the others; each outcome is
        returned as ``{"handler", "status", "error"?}``.
        """
        results = []
        for handler in cls.get_handlers(event_type):
            try:
                handler(payload)
            except Exception as exc:
                logger.exception("Handler %s failed for %s", handler.__name__, event_type)
                results.append({"handler": handler.__name__, "status": "error", "error": str(exc)})
            else:
                results.append({"handler": handler.__name__, "status": "ok"})
        return results

    @classmethod
    def clear(cls) -> None:
        cls._handlers.clear()
