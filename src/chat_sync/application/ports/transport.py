from __future__ import annotations

from typing import Any, Callable, Coroutine, Protocol

from chat_sync.application.dto.commands import OutboundCommand
from chat_sync.application.dto.events import InboundEvent
from chat_sync.domain.value_objects.enums import ConnectionStatus

OnInboundCallback = Callable[[InboundEvent], Coroutine[Any, Any, None]]
OnStatusCallback = Callable[[ConnectionStatus], None]


class CommandSender(Protocol):
    async def send(self, command: OutboundCommand) -> None: ...


class Transport(CommandSender, Protocol):
    async def start(self, on_event: OnInboundCallback, on_status: OnStatusCallback) -> None: ...

    async def stop(self) -> None: ...
