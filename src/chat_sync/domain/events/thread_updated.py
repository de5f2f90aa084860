from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MessageStatus


@dataclass(frozen=True, slots=True)
class ThreadUpdated:
    """Thread of the active contact changed."""

    contact_id: str
    messages: tuple[Message, ...]


@dataclass(frozen=True, slots=True)
class MessageIngested:
    message: Message
    added: bool


@dataclass(frozen=True, slots=True)
class HistoryLoaded:
    contact_id: str
    messages: tuple[Message, ...]
    next_cursor: int | None


@dataclass(frozen=True, slots=True)
class MessageStatusChanged:
    message_id: str
    status: MessageStatus


@dataclass(frozen=True, slots=True)
class ReactionChanged:
    message_id: str
    reactor: str
    emoji: str


@dataclass(frozen=True, slots=True)
class MessageIdRemapped:
    old_id: str
    new_id: str
    contact_ids: tuple[str, ...]
