"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from chat_sync.application.dto.commands import OutboundCommand
from chat_sync.application.exceptions import MediaAcquisitionError
from chat_sync.application.ports.media import ConnectionListener
from chat_sync.application.ports.transport import OnInboundCallback, OnStatusCallback
from chat_sync.config import Settings
from chat_sync.domain.entities.contact import Contact
from chat_sync.domain.entities.message import Message, MessageContext
from chat_sync.domain.value_objects.enums import (
    ConnectionStatus,
    Direction,
    MediaConnectionState,
    MessageStatus,
    MessageType,
)
from chat_sync.infrastructure.bus.event_bus import InProcessEventBus
from chat_sync.services.sync_store import SyncStore

ME = "me"


def make_message(
    *,
    message_id: str = "a",
    contact_id: str = "123",
    direction: str = Direction.INCOMING,
    timestamp: int = 100,
    content: str = "hello",
    status: str = MessageStatus.SENT,
    reply_to: str | None = None,
    message_type: str = MessageType.TEXT,
) -> Message:
    incoming = direction == Direction.INCOMING
    return Message(
        id=message_id,
        from_=contact_id if incoming else ME,
        to=ME if incoming else contact_id,
        type=MessageType(message_type),
        content=content,
        timestamp=timestamp,
        status=MessageStatus(status),
        direction=Direction(direction),
        context=MessageContext(message_id=reply_to) if reply_to else None,
    )


def make_contact(
    contact_id: str = "123",
    *,
    name: str | None = None,
    last_user_msg_timestamp: int | None = None,
    **kwargs: Any,
) -> Contact:
    return Contact(
        id=contact_id,
        name=name,
        last_user_msg_timestamp=last_user_msg_timestamp,
        **kwargs,
    )


@dataclass
class FakeClock:
    now: int = 1_700_000_000_000
    mono: float = 0.0

    def now_ms(self) -> int:
        return self.now

    def monotonic(self) -> float:
        return self.mono

    def advance(self, seconds: float) -> None:
        self.mono += seconds
        self.now += int(seconds * 1000)


@dataclass
class FakeTransport:
    """Records outbound commands; tests push inbound events through deliver()."""

    sent: list[OutboundCommand] = field(default_factory=list)
    fail_sends: bool = False
    started: bool = False
    _on_event: OnInboundCallback | None = None
    _on_status: OnStatusCallback | None = None

    async def start(self, on_event: OnInboundCallback, on_status: OnStatusCallback) -> None:
        self._on_event = on_event
        self._on_status = on_status
        self.started = True
        on_status(ConnectionStatus.CONNECTED)

    async def stop(self) -> None:
        self.started = False

    async def send(self, command: OutboundCommand) -> None:
        if self.fail_sends:
            raise ConnectionError("transport down")
        self.sent.append(command)

    async def deliver(self, event: Any) -> None:
        assert self._on_event is not None
        await self._on_event(event)

    def types(self) -> list[str]:
        return [c.type for c in self.sent]


@dataclass
class FakeMediaSession:
    ice_completes: bool = True
    offer_sdp: str = "v=0 offer"
    answer_sdp: str = "v=0 answer"
    local: str = ""
    remote_offer: str | None = None
    applied_answer: str | None = None
    muted: bool = False
    closed: bool = False
    listener: ConnectionListener | None = None
    _ice_done: asyncio.Event = field(default_factory=asyncio.Event)

    async def create_offer(self) -> None:
        self.local = self.offer_sdp

    async def create_answer(self, remote_offer_sdp: str) -> None:
        self.remote_offer = remote_offer_sdp
        self.local = self.answer_sdp

    async def apply_answer(self, sdp: str) -> None:
        self.applied_answer = sdp

    async def wait_ice_gathering_complete(self) -> None:
        if self.ice_completes:
            return
        await self._ice_done.wait()

    def local_sdp(self) -> str:
        return self.local

    def set_connection_listener(self, listener: ConnectionListener) -> None:
        self.listener = listener

    def set_muted(self, muted: bool) -> None:
        self.muted = muted

    async def close(self) -> None:
        self.closed = True

    def emit(self, state: MediaConnectionState) -> None:
        assert self.listener is not None
        self.listener(state)


@dataclass
class FakeMediaStack:
    ice_completes: bool = True
    fail: bool = False
    gate: asyncio.Event | None = None
    sessions: list[FakeMediaSession] = field(default_factory=list)

    async def open_session(self) -> FakeMediaSession:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise MediaAcquisitionError("microphone permission denied")
        session = FakeMediaSession(ice_completes=self.ice_completes)
        self.sessions.append(session)
        return session

    @property
    def last(self) -> FakeMediaSession:
        return self.sessions[-1]


class Recorder:
    """Collects every event of the given types published on a bus."""

    def __init__(self, bus: InProcessEventBus, *event_types: type) -> None:
        self.events: list[Any] = []
        for event_type in event_types:
            bus.subscribe(event_type, self.events.append)

    def of(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def bus() -> InProcessEventBus:
    return InProcessEventBus()


@pytest.fixture
def store(bus: InProcessEventBus) -> SyncStore:
    return SyncStore(bus)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def media() -> FakeMediaStack:
    return FakeMediaStack()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        HISTORY_PAGE_SIZE=3,
        ICE_GATHER_TIMEOUT=0.05,
        _env_file=None,
    )
