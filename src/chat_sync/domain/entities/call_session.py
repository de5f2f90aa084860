from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.value_objects.enums import CallState, Direction


@dataclass(frozen=True, slots=True)
class CallSession:
    direction: Direction
    state: CallState
    contact_id: str | None = None
    contact_name: str | None = None
    call_id: str | None = None
    remote_sdp: str | None = None
    muted: bool = False
