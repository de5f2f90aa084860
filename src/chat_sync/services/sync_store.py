"""Authoritative in-memory snapshot of contacts and per-contact threads."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Iterator

from chat_sync.application.ports.bus import EventPublisher
from chat_sync.domain.entities.contact import Contact
from chat_sync.domain.entities.message import Message
from chat_sync.domain.events.contacts_changed import ContactsChanged, ContactUpdated
from chat_sync.domain.events.thread_updated import (
    HistoryLoaded,
    MessageIngested,
    MessageStatusChanged,
    ReactionChanged,
    ThreadUpdated,
)
from chat_sync.domain.value_objects.enums import Direction, MessageStatus

logger = logging.getLogger(__name__)

_CONTACT_FIELDS = frozenset(Contact.__dataclass_fields__) - {"id"}


def _sorted(messages: Iterable[Message]) -> list[Message]:
    return sorted(messages, key=lambda m: m.timestamp)


class SyncStore:
    """Single source of truth for contacts and message threads.

    Every write reads the old collection, builds a new one and replaces it,
    so handlers never observe a partially-updated list.
    """

    def __init__(self, bus: EventPublisher) -> None:
        self._bus = bus
        self._contacts: dict[str, Contact] = {}
        self._threads: dict[str, list[Message]] = {}
        self._cursors: dict[str, int | None] = {}
        self._active_contact_id: str | None = None

    # --- queries ---

    @property
    def active_contact_id(self) -> str | None:
        return self._active_contact_id

    def get_contacts(self) -> list[Contact]:
        return list(self._contacts.values())

    def get_contact(self, contact_id: str) -> Contact | None:
        return self._contacts.get(contact_id)

    def contacts_by_recency(self) -> list[Contact]:
        """Contacts ordered newest conversation first; never-messaged contacts last."""
        return sorted(
            self._contacts.values(),
            key=lambda c: c.last_message.timestamp if c.last_message else -1,
            reverse=True,
        )

    def get_messages(self, contact_id: str) -> list[Message]:
        return list(self._threads.get(contact_id, ()))

    def threads(self) -> Iterator[tuple[str, list[Message]]]:
        for contact_id, messages in list(self._threads.items()):
            yield contact_id, list(messages)

    def find_message(self, message_id: str) -> tuple[str, Message] | None:
        for contact_id, messages in self._threads.items():
            for msg in messages:
                if msg.id == message_id:
                    return contact_id, msg
        return None

    def next_cursor(self, contact_id: str) -> int | None:
        return self._cursors.get(contact_id)

    # --- contacts ---

    def set_active_contact(self, contact_id: str | None) -> None:
        self._active_contact_id = contact_id

    def upsert_contacts(self, contacts: Iterable[Contact]) -> None:
        merged = dict(self._contacts)
        for contact in contacts:
            merged[contact.id] = contact
        self._contacts = merged
        self._publish_contacts()

    def patch_contact(self, contact_id: str, **changes: Any) -> Contact:
        unknown = set(changes) - _CONTACT_FIELDS
        if unknown:
            logger.warning("Ignoring unknown contact fields for %s: %s", contact_id, sorted(unknown))
            changes = {k: v for k, v in changes.items() if k in _CONTACT_FIELDS}

        existing = self._contacts.get(contact_id)
        if existing is None:
            logger.info("Patch for unknown contact %s, creating stub", contact_id)
            updated = Contact(id=contact_id, **changes)
        else:
            updated = replace(existing, **changes)

        self._contacts = {**self._contacts, contact_id: updated}
        self._bus.publish(ContactUpdated(contact=updated))
        self._publish_contacts()
        return updated

    def _publish_contacts(self) -> None:
        self._bus.publish(ContactsChanged(contacts=tuple(self._contacts.values())))

    # --- messages ---

    def ingest_message(self, msg: Message) -> bool:
        """Record a live message. Returns False when the id was already known."""
        contact_id = msg.counterpart_id
        self._touch_contact(contact_id, msg)

        thread = self._threads.get(contact_id, [])
        added = not any(m.id == msg.id for m in thread)
        if added:
            self._replace_thread(contact_id, _sorted([*thread, msg]))
        else:
            logger.debug("Duplicate message %s for %s dropped", msg.id, contact_id)

        self._bus.publish(MessageIngested(message=msg, added=added))
        return added

    def _touch_contact(self, contact_id: str, msg: Message) -> None:
        contact = self._contacts.get(contact_id) or Contact(id=contact_id)
        last_user_ts = contact.last_user_msg_timestamp
        if msg.direction == Direction.INCOMING:
            last_user_ts = max(last_user_ts or 0, msg.timestamp)
        self.patch_contact(
            contact_id,
            last_message=msg,
            last_user_msg_timestamp=last_user_ts,
        )

    def ingest_history_page(
        self,
        contact_id: str,
        page: Iterable[Message],
        next_cursor: int | None,
    ) -> list[Message]:
        by_id = {m.id: m for m in self._threads.get(contact_id, ())}
        for msg in page:
            by_id[msg.id] = msg
        merged = _sorted(by_id.values())

        self._cursors = {**self._cursors, contact_id: next_cursor}
        self._replace_thread(contact_id, merged)
        self._bus.publish(
            HistoryLoaded(contact_id=contact_id, messages=tuple(merged), next_cursor=next_cursor)
        )
        return merged

    def clear_thread(self, contact_id: str) -> None:
        self._cursors = {k: v for k, v in self._cursors.items() if k != contact_id}
        self._replace_thread(contact_id, [])

    def apply_status(self, message_id: str, status: MessageStatus) -> bool:
        found = self.find_message(message_id)
        if found is None:
            logger.warning("Status %s for unknown message %s dropped", status, message_id)
            return False

        contact_id, current = found
        if current.status == MessageStatus.FAILED:
            logger.debug("Message %s already failed, ignoring status %s", message_id, status)
            return False
        if status != MessageStatus.FAILED and status.rank <= current.status.rank:
            logger.debug(
                "Stale status %s for %s (current %s)", status, message_id, current.status,
            )
            return False

        self._replace_message(contact_id, current.with_status(status))
        self._bus.publish(MessageStatusChanged(message_id=message_id, status=status))
        return True

    def apply_reaction(self, message_id: str, reactor: str, emoji: str) -> bool:
        found = self.find_message(message_id)
        if found is None:
            logger.warning("Reaction from %s on unknown message %s dropped", reactor, message_id)
            return False

        contact_id, current = found
        self._replace_message(contact_id, current.with_reaction(reactor, emoji))
        self._bus.publish(ReactionChanged(message_id=message_id, reactor=reactor, emoji=emoji))
        return True

    def replace_thread(self, contact_id: str, messages: list[Message]) -> None:
        """Swap in a rewritten thread, re-sorting it."""
        self._replace_thread(contact_id, _sorted(messages))

    def _replace_message(self, contact_id: str, updated: Message) -> None:
        thread = [updated if m.id == updated.id else m for m in self._threads.get(contact_id, ())]
        self._replace_thread(contact_id, thread)

        contact = self._contacts.get(contact_id)
        if contact and contact.last_message and contact.last_message.id == updated.id:
            self._contacts = {**self._contacts, contact_id: replace(contact, last_message=updated)}

    def _replace_thread(self, contact_id: str, messages: list[Message]) -> None:
        self._threads = {**self._threads, contact_id: messages}
        if self._active_contact_id == contact_id:
            self._bus.publish(ThreadUpdated(contact_id=contact_id, messages=tuple(messages)))
