"""Inbound transport events, decoded into a closed set of typed payloads."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from chat_sync.domain.entities.contact import Contact
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import MessageStatus


@dataclass(frozen=True, slots=True)
class ContactsReceived:
    contacts: tuple[Contact, ...]


@dataclass(frozen=True, slots=True)
class MessageReceived:
    message: Message


@dataclass(frozen=True, slots=True)
class MessagesLoaded:
    contact_id: str
    messages: tuple[Message, ...]
    next_cursor: int | None = None


@dataclass(frozen=True, slots=True)
class StatusReceived:
    message_id: str
    status: MessageStatus


@dataclass(frozen=True, slots=True)
class ReactionReceived:
    message_id: str
    reactor: str
    emoji: str


@dataclass(frozen=True, slots=True)
class IdUpdateReceived:
    old_id: str
    new_id: str


@dataclass(frozen=True, slots=True)
class ContactPatchReceived:
    contact_id: str
    changes: dict[str, Any]


@dataclass(frozen=True, slots=True)
class CallCreated:
    call_id: str


@dataclass(frozen=True, slots=True)
class CallIncoming:
    call_id: str
    remote_sdp: str | None
    caller_id: str | None = None
    caller_name: str | None = None


@dataclass(frozen=True, slots=True)
class CallAnswered:
    call_id: str | None
    sdp: str | None


@dataclass(frozen=True, slots=True)
class CallEnded:
    call_id: str | None


@dataclass(frozen=True, slots=True)
class TypingReceived:
    contact_id: str
    is_typing: bool


@dataclass(frozen=True, slots=True)
class ErrorReceived:
    message: str


InboundEvent = Union[
    ContactsReceived,
    MessageReceived,
    MessagesLoaded,
    StatusReceived,
    ReactionReceived,
    IdUpdateReceived,
    ContactPatchReceived,
    CallCreated,
    CallIncoming,
    CallAnswered,
    CallEnded,
    TypingReceived,
    ErrorReceived,
]
