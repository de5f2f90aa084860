"""Synchronous in-process publish/subscribe hub."""
from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")


class InProcessEventBus:
    """Implements application.ports.bus.EventBus.

    Events are keyed by their type. Handlers for one type run in registration
    order; a failing handler is logged and does not stop delivery to the rest.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[Any], None]]] = {}
        # (event type, original handler) -> wrapper registered by once()
        self._once: dict[tuple[type, Callable[[Any], None]], Callable[[Any], None]] = {}

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        wrapper = self._once.pop((event_type, handler), None)
        if wrapper is not None:
            handler = wrapper
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self._handlers[event_type]

    def once(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        if (event_type, handler) in self._once:
            return

        def _once(event: E) -> None:
            self.unsubscribe(event_type, handler)
            handler(event)

        self._once[(event_type, handler)] = _once
        self.subscribe(event_type, _once)

    def publish(self, event: object) -> bool:
        handlers = self._handlers.get(type(event))
        if not handlers:
            return False
        for handler in list(handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Error in handler for %s", type(event).__name__)
        return True

    def listener_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, ()))

    def clear(self, event_type: type | None = None) -> None:
        if event_type is None:
            self._handlers.clear()
            self._once.clear()
        else:
            self._handlers.pop(event_type, None)
            self._once = {k: v for k, v in self._once.items() if k[0] is not event_type}
