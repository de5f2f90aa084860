from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar

E = TypeVar("E")

Handler = Callable[[Any], None]


class EventPublisher(Protocol):
    def publish(self, event: object) -> bool: ...


class EventBus(EventPublisher, Protocol):
    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None: ...

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None: ...

    def once(self, event_type: type[E], handler: Callable[[E], None]) -> None: ...
