"""Entrypoint: python -m chat_sync

Runs a headless sync loop that keeps the local view up to date and logs
what changes.
"""
from __future__ import annotations

import asyncio
import logging
import signal

from chat_sync.app import ChatClient, create_client
from chat_sync.config import settings
from chat_sync.domain.events.contacts_changed import ContactsChanged, TypingChanged
from chat_sync.domain.events.session_events import (
    CallStateChanged,
    ConnectionStatusChanged,
    ErrorReported,
)
from chat_sync.domain.events.thread_updated import MessageIdRemapped, MessageIngested

logger = logging.getLogger("chat_sync")


def _log_message(event: MessageIngested) -> None:
    if event.added:
        msg = event.message
        logger.info("%s message %s %s -> %s", msg.type, msg.id, msg.from_, msg.to)


def _log_activity(client: ChatClient) -> None:
    bus = client.bus
    bus.subscribe(
        ConnectionStatusChanged,
        lambda e: logger.info("Connection: %s", e.status),
    )
    bus.subscribe(
        ContactsChanged,
        lambda e: logger.debug("%d contacts", len(e.contacts)),
    )
    bus.subscribe(MessageIngested, _log_message)
    bus.subscribe(
        MessageIdRemapped,
        lambda e: logger.info("Message %s is now %s", e.old_id, e.new_id),
    )
    bus.subscribe(
        TypingChanged,
        lambda e: logger.debug("%s typing=%s", e.contact_id, e.is_typing),
    )
    bus.subscribe(
        CallStateChanged,
        lambda e: logger.info("Call state: %s", e.state),
    )
    bus.subscribe(
        ErrorReported,
        lambda e: logger.error("Provider error: %s", e.message),
    )


async def run() -> None:
    client = create_client(settings)
    _log_activity(client)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await client.start()
    try:
        await stop.wait()
    finally:
        await client.stop()


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run())


if __name__ == "__main__":
    main()
