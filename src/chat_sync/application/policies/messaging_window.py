from __future__ import annotations

from chat_sync.application.exceptions import WindowClosedError
from chat_sync.domain.entities.contact import Contact
from chat_sync.domain.value_objects.enums import MessageType

DEFAULT_WINDOW_MS = 24 * 60 * 60 * 1000


def window_closes_at(contact: Contact | None, window_ms: int = DEFAULT_WINDOW_MS) -> int | None:
    """Epoch ms at which freeform sends stop being allowed, or None if never opened."""
    if contact is None or not contact.last_user_msg_timestamp:
        return None
    return contact.last_user_msg_timestamp + window_ms


def is_window_open(
    contact: Contact | None,
    now_ms: int,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> bool:
    closes_at = window_closes_at(contact, window_ms)
    return closes_at is not None and now_ms < closes_at


def assert_can_send(
    contact: Contact | None,
    message_type: MessageType,
    now_ms: int,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> None:
    """Raise if a message of this type may not be sent to the contact right now.

    Templates are always allowed; everything else needs an open window.
    """
    if message_type == MessageType.TEMPLATE:
        return
    if not is_window_open(contact, now_ms, window_ms):
        contact_id = contact.id if contact else "?"
        raise WindowClosedError(
            f"Messaging window closed for {contact_id}, only templates may be sent"
        )
