from __future__ import annotations

import logging

from chat_sync.application.dto.events import InboundEvent
from chat_sync.application.exceptions import NotFoundError
from chat_sync.application.ports.clock import Clock, SystemClock
from chat_sync.application.ports.media import MediaStack
from chat_sync.application.ports.transport import Transport
from chat_sync.config import Settings
from chat_sync.config import settings as default_settings
from chat_sync.deps import get_media_stack, get_transport
from chat_sync.domain.entities.call_session import CallSession
from chat_sync.domain.events.session_events import ConnectionStatusChanged
from chat_sync.domain.value_objects.enums import ConnectionStatus
from chat_sync.infrastructure.bus.event_bus import InProcessEventBus
from chat_sync.services.call_signaling import CallSignalingMachine
from chat_sync.services.event_dispatcher import EventDispatcher
from chat_sync.services.identity_reconciler import IdentityReconciler
from chat_sync.services.outbound_service import OutboundService
from chat_sync.services.pagination import PaginationCursorManager
from chat_sync.services.sync_store import SyncStore

logger = logging.getLogger(__name__)


class ChatClient:
    """One synchronized view of a messaging account.

    Owns the event bus, the store and every service that mutates it. The
    transport and media stack are supplied from outside.
    """

    def __init__(
        self,
        transport: Transport,
        media_stack: MediaStack,
        settings: Settings,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.transport = transport
        self.clock = clock or SystemClock()
        self.bus = InProcessEventBus()
        self.store = SyncStore(self.bus)
        self.reconciler = IdentityReconciler(
            self.store,
            self.bus,
            provisional_prefix=settings.PROVISIONAL_ID_PREFIX,
            tolerance_ms=settings.RECONCILE_TOLERANCE_MS,
        )
        self.pager = PaginationCursorManager(
            self.store,
            transport,
            self.clock,
            page_size=settings.HISTORY_PAGE_SIZE,
            request_timeout=settings.HISTORY_REQUEST_TIMEOUT,
        )
        self.calls = CallSignalingMachine(
            media_stack,
            transport,
            self.bus,
            ice_timeout=settings.ICE_GATHER_TIMEOUT,
        )
        self.outbound = OutboundService(
            transport,
            self.store,
            self.clock,
            self_id=settings.SELF_ID,
            enforce_window=settings.ENFORCE_MESSAGING_WINDOW,
            window_ms=settings.messaging_window_ms,
        )
        self.dispatcher = EventDispatcher(
            self.store, self.reconciler, self.pager, self.calls, self.bus,
        )
        self._status = ConnectionStatus.DISCONNECTED

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    async def start(self) -> None:
        await self.transport.start(self._on_event, self._on_status)
        logger.info("Chat client started")

    async def stop(self) -> None:
        try:
            await self.calls.end_call()
        finally:
            await self.transport.stop()
        self._on_status(ConnectionStatus.DISCONNECTED)
        logger.info("Chat client stopped")

    async def _on_event(self, event: InboundEvent) -> None:
        await self.dispatcher.dispatch(event)

    def _on_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        logger.info("Connection status %s -> %s", self._status, status)
        self._status = status
        self.bus.publish(ConnectionStatusChanged(status=status))

    # --- conversation navigation ---

    async def select_contact(self, contact_id: str | None) -> None:
        """Make a contact's thread the active one and fetch its newest page."""
        self.store.set_active_contact(contact_id)
        if contact_id is not None:
            await self.pager.load_initial(contact_id)

    async def load_more(self) -> bool:
        contact_id = self.store.active_contact_id
        if contact_id is None:
            return False
        return await self.pager.load_more(contact_id)

    # --- calls ---

    async def start_call(self, contact_id: str) -> CallSession | None:
        contact = self.store.get_contact(contact_id)
        if contact is None:
            raise NotFoundError(f"Unknown contact {contact_id}")
        return await self.calls.start_call(contact_id, contact.display_name)

    async def accept_call(self) -> CallSession | None:
        return await self.calls.accept_call()

    async def reject_call(self) -> None:
        await self.calls.reject_call()

    async def end_call(self) -> None:
        await self.calls.end_call()

    def set_muted(self, muted: bool) -> None:
        self.calls.set_muted(muted)


def create_client(settings: Settings | None = None) -> ChatClient:
    settings = settings or default_settings
    return ChatClient(get_transport(settings), get_media_stack(settings), settings)
