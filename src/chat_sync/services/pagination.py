"""Backward, cursor-based history loading per contact."""
from __future__ import annotations

import logging
from typing import Sequence

from chat_sync.application.dto.commands import GetMessages
from chat_sync.application.ports.clock import Clock
from chat_sync.application.ports.transport import CommandSender
from chat_sync.domain.entities.message import Message
from chat_sync.services.sync_store import SyncStore

logger = logging.getLogger(__name__)


class PaginationCursorManager:
    """Requests history pages and merges them into the store.

    At most one request per contact is in flight; a request that got no
    answer within ``request_timeout`` seconds is considered lost.
    """

    def __init__(
        self,
        store: SyncStore,
        sender: CommandSender,
        clock: Clock,
        *,
        page_size: int = 50,
        request_timeout: float = 30.0,
    ) -> None:
        self._store = store
        self._sender = sender
        self._clock = clock
        self._page_size = page_size
        self._request_timeout = request_timeout
        self._in_flight: dict[str, float] = {}

    @property
    def page_size(self) -> int:
        return self._page_size

    def is_loading(self, contact_id: str) -> bool:
        started = self._in_flight.get(contact_id)
        if started is None:
            return False
        if self._clock.monotonic() - started > self._request_timeout:
            logger.warning("History request for %s timed out, allowing retry", contact_id)
            del self._in_flight[contact_id]
            return False
        return True

    def has_more(self, contact_id: str) -> bool:
        return self._store.next_cursor(contact_id) is not None

    async def load_initial(self, contact_id: str) -> None:
        """Clear the thread and fetch the newest page."""
        self._store.clear_thread(contact_id)
        await self._request(GetMessages(contact_id=contact_id, limit=self._page_size))

    async def load_more(self, contact_id: str) -> bool:
        cursor = self._store.next_cursor(contact_id)
        if cursor is None:
            logger.debug("No more history for %s", contact_id)
            return False
        if self.is_loading(contact_id):
            logger.debug("History load already in flight for %s", contact_id)
            return False
        await self._request(
            GetMessages(contact_id=contact_id, limit=self._page_size, before_timestamp=cursor)
        )
        return True

    async def _request(self, command: GetMessages) -> None:
        self._in_flight[command.contact_id] = self._clock.monotonic()
        try:
            await self._sender.send(command)
        except Exception:
            self._in_flight.pop(command.contact_id, None)
            raise

    def on_page_loaded(self, contact_id: str, page: Sequence[Message]) -> list[Message]:
        self._in_flight.pop(contact_id, None)
        if len(page) < self._page_size:
            cursor = None
        else:
            cursor = min(m.timestamp for m in page)
        logger.debug(
            "Loaded %d messages for %s (next cursor=%s)", len(page), contact_id, cursor,
        )
        return self._store.ingest_history_page(contact_id, page, cursor)
