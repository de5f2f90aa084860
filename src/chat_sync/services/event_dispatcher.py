"""Routes decoded inbound events to the component that owns them."""
from __future__ import annotations

import logging

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
from chat_sync.application.ports.bus import EventPublisher
from chat_sync.domain.events.contacts_changed import TypingChanged
from chat_sync.domain.events.session_events import ErrorReported
from chat_sync.services.call_signaling import CallSignalingMachine
from chat_sync.services.identity_reconciler import IdentityReconciler
from chat_sync.services.pagination import PaginationCursorManager
from chat_sync.services.sync_store import SyncStore

logger = logging.getLogger(__name__)


class EventDispatcher:
    def __init__(
        self,
        store: SyncStore,
        reconciler: IdentityReconciler,
        pager: PaginationCursorManager,
        calls: CallSignalingMachine,
        bus: EventPublisher,
    ) -> None:
        self._store = store
        self._reconciler = reconciler
        self._pager = pager
        self._calls = calls
        self._bus = bus

    async def dispatch(self, event: InboundEvent) -> None:
        """Apply one inbound event. Failures are logged and the event dropped."""
        try:
            await self._apply(event)
        except Exception:
            logger.exception("Error applying %s", type(event).__name__)

    async def _apply(self, event: InboundEvent) -> None:
        match event:
            case ContactsReceived(contacts=contacts):
                self._store.upsert_contacts(contacts)
            case MessageReceived(message=message):
                self._store.ingest_message(message)
            case MessagesLoaded(contact_id=contact_id, messages=messages):
                self._pager.on_page_loaded(contact_id, messages)
            case StatusReceived(message_id=message_id, status=status):
                self._store.apply_status(message_id, status)
            case ReactionReceived(message_id=message_id, reactor=reactor, emoji=emoji):
                self._store.apply_reaction(message_id, reactor, emoji)
            case IdUpdateReceived(old_id=old_id, new_id=new_id):
                self._reconciler.remap_id(old_id, new_id)
            case ContactPatchReceived(contact_id=contact_id, changes=changes):
                self._store.patch_contact(contact_id, **changes)
            case CallCreated(call_id=call_id):
                await self._calls.on_call_created(call_id)
            case CallIncoming(call_id=call_id, remote_sdp=sdp, caller_id=caller_id, caller_name=name):
                await self._calls.on_incoming_call(call_id, sdp, caller_id, name)
            case CallAnswered(call_id=call_id, sdp=sdp):
                await self._calls.on_remote_answer(call_id, sdp)
            case CallEnded(call_id=call_id):
                await self._calls.on_remote_ended(call_id)
            case TypingReceived(contact_id=contact_id, is_typing=is_typing):
                self._bus.publish(TypingChanged(contact_id=contact_id, is_typing=is_typing))
            case ErrorReceived(message=message):
                logger.warning("Transport reported error: %s", message)
                self._bus.publish(ErrorReported(message=message))
            case _:
                logger.warning("Unhandled inbound event %r", event)
