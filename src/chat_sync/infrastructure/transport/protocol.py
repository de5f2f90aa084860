"""Wire envelope models for the transport channel.

Inbound frames look like ``{"type": "<event>", ...}``. Depending on the
relay, event fields sit either at the top level or under ``data``; both
shapes are accepted.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from chat_sync.domain.value_objects.enums import Direction, MessageStatus, MessageType


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class _FlatEvent(_Wire):
    """Event whose fields may be nested under ``data``."""

    @model_validator(mode="before")
    @classmethod
    def _lift_data(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        if isinstance(value.get("data"), dict):
            top = {k: v for k, v in value.items() if k != "data"}
            value = {**top, **value["data"], "type": value["type"]}
        return cls._normalize(value)

    @classmethod
    def _normalize(cls, fields: dict[str, Any]) -> dict[str, Any]:
        return fields


# --- entities ---


class WireContext(BaseModel):
    message_id: str


class WireMetadata(_Wire):
    thumbnail: str | None = None
    caption: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    is_voice_note: bool | None = None
    duration: float | None = None


class WireMessage(_Wire):
    id: str
    from_: str = Field(alias="from")
    to: str
    type: MessageType = MessageType.UNKNOWN
    content: str = ""
    timestamp: int
    status: MessageStatus = MessageStatus.SENT
    direction: Direction
    reactions: dict[str, str] | None = None
    context: WireContext | None = None
    metadata: WireMetadata | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _unknown_type(cls, value: Any) -> MessageType:
        return MessageType.parse(value)


class WireContact(_Wire):
    id: str
    name: str | None = None
    push_name: str | None = None
    custom_name: str | None = None
    is_favorite: bool = False
    last_message: WireMessage | None = None
    last_user_msg_timestamp: int | None = None
    profile_pic: str | None = None


class WireContactPatch(_Wire):
    name: str | None = None
    push_name: str | None = None
    custom_name: str | None = None
    is_favorite: bool | None = None
    profile_pic: str | None = None
    last_user_msg_timestamp: int | None = None


# --- events ---


class _PayloadEvent(_Wire):
    """Event carrying its payload under ``data``, sometimes as ``data.data``."""

    @model_validator(mode="before")
    @classmethod
    def _unwrap(cls, value: Any) -> Any:
        if isinstance(value, dict):
            inner = value.get("data")
            if isinstance(inner, dict) and "data" in inner:
                return {**value, "data": inner["data"]}
        return value


class ContactsEvent(_PayloadEvent):
    type: Literal["contacts"]
    data: list[WireContact]


class MessageEvent(_PayloadEvent):
    type: Literal["message"]
    data: WireMessage


class MessagesLoadedEvent(_Wire):
    type: Literal["messages_loaded"]
    contact_id: str
    data: list[WireMessage] = Field(default_factory=list)
    next_cursor: int | None = None


class StatusEvent(_FlatEvent):
    type: Literal["status"]
    id: str
    status: MessageStatus


class ReactionEvent(_FlatEvent):
    type: Literal["reaction"]
    message_id: str
    from_: str = Field(alias="from")
    emoji: str = ""


class IdUpdateEvent(_FlatEvent):
    type: Literal["id_update"]
    old_id: str
    new_id: str


class ContactUpdateEvent(_Wire):
    type: Literal["contact_update"]
    id: str
    changes: WireContactPatch

    @model_validator(mode="before")
    @classmethod
    def _split(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        fields = value["data"] if isinstance(value.get("data"), dict) else value
        fields = {k: v for k, v in fields.items() if k != "type"}
        return {"type": value.get("type"), "id": fields.pop("id", None), "changes": fields}


class _CallEvent(_FlatEvent):
    @classmethod
    def _normalize(cls, fields: dict[str, Any]) -> dict[str, Any]:
        session = fields.get("session")
        if not fields.get("sdp") and isinstance(session, dict):
            return {**fields, "sdp": session.get("sdp")}
        return fields


class CallCreatedEvent(_CallEvent):
    type: Literal["call_created"]
    call_id: str | None = None
    id: str | None = None

    @model_validator(mode="after")
    def _require_id(self) -> CallCreatedEvent:
        if not (self.call_id or self.id):
            raise ValueError("call_created without a call id")
        return self


class CallIncomingEvent(_CallEvent):
    type: Literal["call_incoming"]
    id: str
    from_: str | None = Field(default=None, alias="from")
    from_name: str | None = None
    sdp: str | None = None


class CallAnsweredEvent(_CallEvent):
    type: Literal["call_answered"]
    id: str | None = None
    sdp: str | None = None


class CallEndedEvent(_CallEvent):
    type: Literal["call_ended"]
    id: str | None = None


class TypingEvent(_FlatEvent):
    type: Literal["typing"]
    contact_id: str
    is_typing: bool


class ErrorEvent(_Wire):
    type: Literal["error"]
    message: str = "unknown error"

    @model_validator(mode="before")
    @classmethod
    def _message(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        data = value.get("data")
        if isinstance(data, str):
            return {"type": value["type"], "message": data}
        if isinstance(data, dict) and "message" in data:
            return {"type": value["type"], "message": str(data["message"])}
        return value


WireEvent = Annotated[
    Union[
        ContactsEvent,
        MessageEvent,
        MessagesLoadedEvent,
        StatusEvent,
        ReactionEvent,
        IdUpdateEvent,
        ContactUpdateEvent,
        CallCreatedEvent,
        CallIncomingEvent,
        CallAnsweredEvent,
        CallEndedEvent,
        TypingEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

KNOWN_EVENTS = frozenset(
    {
        "contacts",
        "message",
        "messages_loaded",
        "status",
        "reaction",
        "id_update",
        "contact_update",
        "call_created",
        "call_incoming",
        "call_answered",
        "call_ended",
        "typing",
        "error",
    }
)
