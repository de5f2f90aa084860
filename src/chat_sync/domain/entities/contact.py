from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class Contact:
    id: str
    name: str | None = None
    push_name: str | None = None
    custom_name: str | None = None
    is_favorite: bool = False
    last_message: Message | None = None
    last_user_msg_timestamp: int | None = None
    profile_pic: str | None = None

    @property
    def display_name(self) -> str:
        return self.custom_name or self.push_name or self.name or self.id
