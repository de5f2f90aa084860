from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping

from chat_sync.domain.value_objects.enums import Direction, MessageStatus, MessageType


@dataclass(frozen=True, slots=True)
class MessageContext:
    """Reply-quote back-reference to another message."""

    message_id: str


@dataclass(frozen=True, slots=True)
class MediaMetadata:
    thumbnail: str | None = None
    caption: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    is_voice_note: bool | None = None
    duration: float | None = None


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    from_: str
    to: str
    type: MessageType
    content: str
    timestamp: int
    status: MessageStatus
    direction: Direction
    reactions: Mapping[str, str] = field(default_factory=dict)
    context: MessageContext | None = None
    metadata: MediaMetadata | None = None

    @property
    def counterpart_id(self) -> str:
        """Id of the contact whose thread holds this message."""
        return self.from_ if self.direction == Direction.INCOMING else self.to

    def is_provisional(self, prefix: str) -> bool:
        return self.id.startswith(prefix)

    def with_status(self, status: MessageStatus) -> Message:
        return replace(self, status=status)

    def with_reaction(self, reactor: str, emoji: str) -> Message:
        reactions = dict(self.reactions)
        if emoji:
            reactions[reactor] = emoji
        else:
            reactions.pop(reactor, None)
        return replace(self, reactions=reactions)
