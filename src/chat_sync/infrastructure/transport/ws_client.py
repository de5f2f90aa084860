"""WebSocket transport to the messaging relay (aiohttp client)."""
from __future__ import annotations

import asyncio
import logging

import aiohttp

from chat_sync.application.dto.commands import OutboundCommand
from chat_sync.application.exceptions import MalformedEventError, NotConnectedError
from chat_sync.application.ports.transport import OnInboundCallback, OnStatusCallback
from chat_sync.domain.value_objects.enums import ConnectionStatus
from chat_sync.infrastructure.transport.serializer import deserialize_event, serialize_command

logger = logging.getLogger(__name__)


def calc_backoff(attempts: int, base: float, maximum: float) -> float:
    return min(base * (2 ** attempts), maximum)


class WebSocketTransport:
    """Implements application.ports.transport.Transport.

    Keeps one connection open in a background task and reconnects with
    exponential backoff when it drops.
    """

    def __init__(
        self,
        url: str,
        *,
        heartbeat: float = 30.0,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
    ) -> None:
        self._url = url
        self._heartbeat = heartbeat
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._task: asyncio.Task[None] | None = None

    async def start(self, on_event: OnInboundCallback, on_status: OnStatusCallback) -> None:
        self._session = aiohttp.ClientSession()
        self._task = asyncio.create_task(self._run(on_event, on_status), name="ws-transport")
        logger.info("WebSocket transport started for %s", self._url)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._session is not None:
            await self._session.close()
            self._session = None
        logger.info("WebSocket transport stopped")

    async def send(self, command: OutboundCommand) -> None:
        if self._ws is None or self._ws.closed:
            raise NotConnectedError(f"Cannot send {command.type}: not connected")
        await self._ws.send_str(serialize_command(command))

    async def _run(self, on_event: OnInboundCallback, on_status: OnStatusCallback) -> None:
        assert self._session is not None
        attempts = 0
        while True:
            on_status(ConnectionStatus.CONNECTING)
            try:
                async with self._session.ws_connect(self._url, heartbeat=self._heartbeat) as ws:
                    self._ws = ws
                    attempts = 0
                    on_status(ConnectionStatus.CONNECTED)
                    logger.info("Connected to %s", self._url)
                    await self._read_loop(ws, on_event)
            except asyncio.CancelledError:
                raise
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
                logger.warning("WebSocket connection error: %s", exc)
            finally:
                self._ws = None

            on_status(ConnectionStatus.DISCONNECTED)
            delay = calc_backoff(attempts, self._base_delay, self._max_delay)
            attempts += 1
            logger.info("Reconnecting in %.1fs", delay)
            await asyncio.sleep(delay)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse, on_event: OnInboundCallback) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    event = deserialize_event(msg.data)
                except MalformedEventError as exc:
                    logger.warning("Dropping malformed frame: %s", exc.detail)
                    continue
                if event is not None:
                    await on_event(event)
            elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                logger.warning("WebSocket closed: %s", ws.exception())
                break
