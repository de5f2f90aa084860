from __future__ import annotations

import pytest

from chat_sync.application.dto.commands import GetMessages
from chat_sync.services.pagination import PaginationCursorManager
from chat_sync.services.sync_store import SyncStore
from tests.conftest import FakeClock, FakeTransport, make_message


@pytest.fixture
def pager(store: SyncStore, transport: FakeTransport, clock: FakeClock) -> PaginationCursorManager:
    return PaginationCursorManager(store, transport, clock, page_size=3, request_timeout=30.0)


def page(*timestamps: int, contact_id: str = "123"):
    return [
        make_message(message_id=f"m{ts}", contact_id=contact_id, timestamp=ts) for ts in timestamps
    ]


@pytest.mark.asyncio
async def test_load_initial_clears_thread_and_requests_newest(pager, store, transport):
    store.ingest_message(make_message(message_id="stale"))

    await pager.load_initial("123")

    assert store.get_messages("123") == []
    assert transport.sent == [GetMessages(contact_id="123", limit=3)]
    assert pager.is_loading("123")


@pytest.mark.asyncio
async def test_full_page_sets_cursor_to_oldest(pager, store):
    await pager.load_initial("123")
    pager.on_page_loaded("123", page(300, 100, 200))

    assert store.next_cursor("123") == 100
    assert pager.has_more("123")
    assert not pager.is_loading("123")
    assert [m.timestamp for m in store.get_messages("123")] == [100, 200, 300]


@pytest.mark.asyncio
async def test_short_page_ends_history(pager, store):
    await pager.load_initial("123")
    pager.on_page_loaded("123", page(100, 200))

    assert store.next_cursor("123") is None
    assert not pager.has_more("123")


@pytest.mark.asyncio
async def test_load_more_requests_before_cursor(pager, transport):
    await pager.load_initial("123")
    pager.on_page_loaded("123", page(100, 200, 300))

    assert await pager.load_more("123") is True
    assert transport.sent[-1] == GetMessages(contact_id="123", limit=3, before_timestamp=100)


@pytest.mark.asyncio
async def test_load_more_refused_without_cursor(pager, transport):
    assert await pager.load_more("123") is False
    assert transport.sent == []


@pytest.mark.asyncio
async def test_load_more_refused_while_in_flight(pager, transport):
    await pager.load_initial("123")
    pager.on_page_loaded("123", page(100, 200, 300))
    await pager.load_more("123")

    assert await pager.load_more("123") is False
    assert len(transport.sent) == 2


@pytest.mark.asyncio
async def test_lost_request_allows_retry_after_timeout(pager, transport, clock):
    await pager.load_initial("123")
    pager.on_page_loaded("123", page(100, 200, 300))
    await pager.load_more("123")

    clock.advance(31)

    assert await pager.load_more("123") is True
    assert len(transport.sent) == 3


@pytest.mark.asyncio
async def test_contacts_paginate_independently(pager, transport):
    await pager.load_initial("123")
    pager.on_page_loaded("123", page(100, 200, 300))
    await pager.load_more("123")

    await pager.load_initial("456")
    pager.on_page_loaded("456", page(10, 20, 30, contact_id="456"))

    assert await pager.load_more("456") is True
    assert transport.sent[-1].before_timestamp == 10


@pytest.mark.asyncio
async def test_older_page_merges_without_duplicates(pager, store):
    await pager.load_initial("123")
    pager.on_page_loaded("123", page(300, 400, 500))
    store.ingest_message(make_message(message_id="m600", timestamp=600))
    await pager.load_more("123")

    pager.on_page_loaded("123", page(100, 200, 300))

    stamps = [m.timestamp for m in store.get_messages("123")]
    assert stamps == [100, 200, 300, 400, 500, 600]
    assert store.next_cursor("123") == 100


@pytest.mark.asyncio
async def test_failed_send_clears_in_flight(pager, transport):
    transport.fail_sends = True

    with pytest.raises(ConnectionError):
        await pager.load_initial("123")

    assert not pager.is_loading("123")
