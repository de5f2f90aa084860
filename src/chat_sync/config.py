from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    TRANSPORT: Literal["ws", "redis"] = "ws"

    WS_URL: str = "ws://localhost:3000/chat"
    WS_HEARTBEAT_SECONDS: int = 30
    RECONNECT_BASE_DELAY: float = 1.0
    RECONNECT_MAX_DELAY: float = 60.0

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_INBOUND_CHANNEL: str = "chat"
    REDIS_OUTBOUND_CHANNEL: str = "chat.commands"

    HISTORY_PAGE_SIZE: int = 50
    HISTORY_REQUEST_TIMEOUT: float = 30.0

    ICE_GATHER_TIMEOUT: float = 5.0
    MEDIA_BACKEND: Literal["aiortc", "none"] = "aiortc"
    ICE_SERVERS: list[str] = ["stun:stun.l.google.com:19302"]
    AUDIO_INPUT_DEVICE: str = "default"
    AUDIO_INPUT_FORMAT: str | None = "pulse"

    PROVISIONAL_ID_PREFIX: str = "wamid_"
    RECONCILE_TOLERANCE_MS: int = 5000

    MESSAGING_WINDOW_HOURS: int = 24
    ENFORCE_MESSAGING_WINDOW: bool = True

    SELF_ID: str = "me"

    LOG_LEVEL: str = "INFO"

    @property
    def messaging_window_ms(self) -> int:
        return self.MESSAGING_WINDOW_HOURS * 60 * 60 * 1000

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
