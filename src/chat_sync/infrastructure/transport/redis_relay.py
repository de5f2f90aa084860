"""Redis Pub/Sub transport: inbound relay channel, outbound command channel."""
from __future__ import annotations

import asyncio
import logging

import redis.asyncio as aioredis

from chat_sync.application.dto.commands import OutboundCommand
from chat_sync.application.exceptions import MalformedEventError
from chat_sync.application.ports.transport import OnInboundCallback, OnStatusCallback
from chat_sync.domain.value_objects.enums import ConnectionStatus
from chat_sync.infrastructure.transport.serializer import deserialize_event, serialize_command

logger = logging.getLogger(__name__)


class RedisRelayTransport:
    """Implements application.ports.transport.Transport over Redis channels."""

    def __init__(
        self,
        redis: aioredis.Redis,
        inbound_channel: str,
        outbound_channel: str,
    ) -> None:
        self._redis = redis
        self._inbound_channel = inbound_channel
        self._outbound_channel = outbound_channel
        self._task: asyncio.Task[None] | None = None

    async def start(self, on_event: OnInboundCallback, on_status: OnStatusCallback) -> None:
        on_status(ConnectionStatus.CONNECTING)
        self._task = asyncio.create_task(self._listen(on_event, on_status), name="redis-relay")
        logger.info("Redis relay started on channel=%s", self._inbound_channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._redis.aclose()
        logger.info("Redis relay stopped")

    async def send(self, command: OutboundCommand) -> None:
        await self._redis.publish(self._outbound_channel, serialize_command(command))

    async def _listen(self, on_event: OnInboundCallback, on_status: OnStatusCallback) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._inbound_channel)
        on_status(ConnectionStatus.CONNECTED)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    event = deserialize_event(message["data"])
                except MalformedEventError as exc:
                    logger.warning("Dropping malformed relay message: %s", exc.detail)
                    continue
                if event is None:
                    continue
                try:
                    await on_event(event)
                except Exception:
                    logger.exception("Error processing relay message")
        finally:
            on_status(ConnectionStatus.DISCONNECTED)
            await pubsub.unsubscribe(self._inbound_channel)
            await pubsub.aclose()
