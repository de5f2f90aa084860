"""Outbound commands accepted by the transport channel."""
from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Command(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ReplyContext(BaseModel):
    message_id: str


class GetMessages(_Command):
    type: Literal["get_messages"] = "get_messages"
    contact_id: str
    limit: int = 50
    before_timestamp: int | None = None


class SendText(_Command):
    type: Literal["text"] = "text"
    to: str
    content: str
    context: ReplyContext | None = None


class SendMedia(_Command):
    type: Literal["image", "audio", "video", "document", "sticker"]
    to: str
    content: str  # provider media id
    caption: str | None = None
    file_name: str | None = None
    is_voice_note: bool | None = None
    context: ReplyContext | None = None


class SendTemplate(_Command):
    type: Literal["template"] = "template"
    to: str
    template_name: str
    language_code: str = "en_US"
    components: list[dict[str, Any]] = Field(default_factory=list)


class SendInteractive(_Command):
    type: Literal["interactive"] = "interactive"
    to: str
    interactive: dict[str, Any]


class Typing(_Command):
    type: Literal["typing"] = "typing"
    to: str
    state: bool


class ReadReceipt(_Command):
    type: Literal["read"] = "read"
    message_id: str


class SendReaction(_Command):
    type: Literal["reaction"] = "reaction"
    to: str
    message_id: str
    emoji: str


class UpdateContact(_Command):
    type: Literal["update_contact"] = "update_contact"
    contact_id: str
    name: str


class ToggleFavorite(_Command):
    type: Literal["toggle_favorite"] = "toggle_favorite"
    contact_id: str


class CallStart(_Command):
    type: Literal["call_start"] = "call_start"
    to: str
    sdp: str


class CallAccept(_Command):
    type: Literal["call_accept"] = "call_accept"
    call_id: str
    sdp: str


class CallReject(_Command):
    type: Literal["call_reject"] = "call_reject"
    call_id: str


OutboundCommand = Union[
    GetMessages,
    SendText,
    SendMedia,
    SendTemplate,
    SendInteractive,
    Typing,
    ReadReceipt,
    SendReaction,
    UpdateContact,
    ToggleFavorite,
    CallStart,
    CallAccept,
    CallReject,
]
