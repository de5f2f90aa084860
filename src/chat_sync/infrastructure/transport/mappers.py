from __future__ import annotations

from chat_sync.application.dto.events import (
    CallAnswered,
    CallCreated,
    CallEnded,
    CallIncoming,
    ContactPatchReceived,
    ContactsReceived,
    ErrorReceived,
    IdUpdateReceived,
    InboundEvent,
    MessageReceived,
    MessagesLoaded,
    ReactionReceived,
    StatusReceived,
    TypingReceived,
)
from chat_sync.domain.entities.contact import Contact
from chat_sync.domain.entities.message import MediaMetadata, Message, MessageContext
from chat_sync.infrastructure.transport.protocol import (
    CallAnsweredEvent,
    CallCreatedEvent,
    CallEndedEvent,
    CallIncomingEvent,
    ContactsEvent,
    ContactUpdateEvent,
    ErrorEvent,
    IdUpdateEvent,
    MessageEvent,
    MessagesLoadedEvent,
    ReactionEvent,
    StatusEvent,
    TypingEvent,
    WireContact,
    WireMessage,
)


def wire_to_message(wire: WireMessage) -> Message:
    return Message(
        id=wire.id,
        from_=wire.from_,
        to=wire.to,
        type=wire.type,
        content=wire.content,
        timestamp=wire.timestamp,
        status=wire.status,
        direction=wire.direction,
        reactions=dict(wire.reactions or {}),
        context=MessageContext(message_id=wire.context.message_id) if wire.context else None,
        metadata=MediaMetadata(**wire.metadata.model_dump()) if wire.metadata else None,
    )


def wire_to_contact(wire: WireContact) -> Contact:
    return Contact(
        id=wire.id,
        name=wire.name,
        push_name=wire.push_name,
        custom_name=wire.custom_name,
        is_favorite=wire.is_favorite,
        last_message=wire_to_message(wire.last_message) if wire.last_message else None,
        last_user_msg_timestamp=wire.last_user_msg_timestamp,
        profile_pic=wire.profile_pic,
    )


def wire_to_event(wire: object) -> InboundEvent:
    match wire:
        case ContactsEvent(data=contacts):
            return ContactsReceived(contacts=tuple(wire_to_contact(c) for c in contacts))
        case MessageEvent(data=message):
            return MessageReceived(message=wire_to_message(message))
        case MessagesLoadedEvent():
            return MessagesLoaded(
                contact_id=wire.contact_id,
                messages=tuple(wire_to_message(m) for m in wire.data),
                next_cursor=wire.next_cursor,
            )
        case StatusEvent():
            return StatusReceived(message_id=wire.id, status=wire.status)
        case ReactionEvent():
            return ReactionReceived(message_id=wire.message_id, reactor=wire.from_, emoji=wire.emoji)
        case IdUpdateEvent():
            return IdUpdateReceived(old_id=wire.old_id, new_id=wire.new_id)
        case ContactUpdateEvent():
            return ContactPatchReceived(
                contact_id=wire.id,
                changes=wire.changes.model_dump(exclude_unset=True),
            )
        case CallCreatedEvent():
            return CallCreated(call_id=wire.call_id or wire.id or "")
        case CallIncomingEvent():
            return CallIncoming(
                call_id=wire.id,
                remote_sdp=wire.sdp,
                caller_id=wire.from_,
                caller_name=wire.from_name or wire.from_,
            )
        case CallAnsweredEvent():
            return CallAnswered(call_id=wire.id, sdp=wire.sdp)
        case CallEndedEvent():
            return CallEnded(call_id=wire.id)
        case TypingEvent():
            return TypingReceived(contact_id=wire.contact_id, is_typing=wire.is_typing)
        case ErrorEvent():
            return ErrorReceived(message=wire.message)
    raise TypeError(f"Unsupported wire event {type(wire).__name__}")
