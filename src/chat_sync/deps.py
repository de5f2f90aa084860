"""Construction of infrastructure adapters from settings."""
from __future__ import annotations

import redis.asyncio as aioredis

from chat_sync.application.ports.media import MediaStack
from chat_sync.application.ports.transport import Transport
from chat_sync.config import Settings
from chat_sync.infrastructure.media.aiortc_stack import AiortcMediaStack
from chat_sync.infrastructure.media.unavailable import UnavailableMediaStack
from chat_sync.infrastructure.transport.redis_relay import RedisRelayTransport
from chat_sync.infrastructure.transport.ws_client import WebSocketTransport


def get_transport(settings: Settings) -> Transport:
    if settings.TRANSPORT == "redis":
        redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        return RedisRelayTransport(
            redis,
            settings.REDIS_INBOUND_CHANNEL,
            settings.REDIS_OUTBOUND_CHANNEL,
        )
    assert settings.WS_URL, "WS_URL must be set when TRANSPORT=ws"
    return WebSocketTransport(
        settings.WS_URL,
        heartbeat=settings.WS_HEARTBEAT_SECONDS,
        base_delay=settings.RECONNECT_BASE_DELAY,
        max_delay=settings.RECONNECT_MAX_DELAY,
    )


def get_media_stack(settings: Settings) -> MediaStack:
    if settings.MEDIA_BACKEND == "none":
        return UnavailableMediaStack()
    return AiortcMediaStack(
        ice_servers=settings.ICE_SERVERS,
        input_device=settings.AUDIO_INPUT_DEVICE,
        input_format=settings.AUDIO_INPUT_FORMAT,
    )
