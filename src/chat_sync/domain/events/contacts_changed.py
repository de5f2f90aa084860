from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.contact import Contact


@dataclass(frozen=True, slots=True)
class ContactsChanged:
    contacts: tuple[Contact, ...]


@dataclass(frozen=True, slots=True)
class ContactUpdated:
    contact: Contact


@dataclass(frozen=True, slots=True)
class TypingChanged:
    contact_id: str
    is_typing: bool
