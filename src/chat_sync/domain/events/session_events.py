from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.call_session import CallSession
from chat_sync.domain.value_objects.enums import CallState, ConnectionStatus


@dataclass(frozen=True, slots=True)
class CallStateChanged:
    state: CallState
    session: CallSession | None


@dataclass(frozen=True, slots=True)
class ConnectionStatusChanged:
    status: ConnectionStatus


@dataclass(frozen=True, slots=True)
class ErrorReported:
    message: str
