from __future__ import annotations

import pytest

from chat_sync.domain.events.contacts_changed import ContactsChanged, ContactUpdated
from chat_sync.domain.events.thread_updated import (
    HistoryLoaded,
    MessageIngested,
    MessageStatusChanged,
    ReactionChanged,
    ThreadUpdated,
)
from chat_sync.domain.value_objects.enums import Direction, MessageStatus
from chat_sync.services.sync_store import SyncStore
from tests.conftest import Recorder, make_contact, make_message


def ids(messages) -> list[str]:
    return [m.id for m in messages]


def test_first_incoming_message_creates_contact(store: SyncStore):
    store.ingest_message(make_message(message_id="a", contact_id="123", timestamp=100))

    contact = store.get_contact("123")
    assert contact is not None
    assert contact.last_message is not None
    assert contact.last_message.id == "a"
    assert contact.last_user_msg_timestamp == 100


def test_repeated_ids_are_kept_once_and_sorted(store: SyncStore):
    for message_id, ts in [("c", 300), ("a", 100), ("b", 200), ("a", 100), ("c", 300)]:
        store.ingest_message(make_message(message_id=message_id, timestamp=ts))

    assert ids(store.get_messages("123")) == ["a", "b", "c"]


def test_duplicate_ingest_reports_not_added(bus, store: SyncStore):
    rec = Recorder(bus, MessageIngested)
    assert store.ingest_message(make_message(message_id="a")) is True
    assert store.ingest_message(make_message(message_id="a")) is False

    assert [e.added for e in rec.of(MessageIngested)] == [True, False]


def test_equal_timestamps_keep_arrival_order(store: SyncStore):
    store.ingest_message(make_message(message_id="x", timestamp=100))
    store.ingest_message(make_message(message_id="y", timestamp=100))

    assert ids(store.get_messages("123")) == ["x", "y"]


def test_outgoing_message_does_not_touch_last_user_timestamp(store: SyncStore):
    store.ingest_message(make_message(message_id="in", timestamp=100))
    store.ingest_message(
        make_message(message_id="out", direction=Direction.OUTGOING, timestamp=500)
    )

    contact = store.get_contact("123")
    assert contact.last_user_msg_timestamp == 100
    assert contact.last_message.id == "out"


def test_last_user_timestamp_never_regresses(store: SyncStore):
    store.ingest_message(make_message(message_id="new", timestamp=500))
    store.ingest_message(make_message(message_id="old", timestamp=100))

    assert store.get_contact("123").last_user_msg_timestamp == 500


def test_history_page_merges_with_live_messages(store: SyncStore):
    store.ingest_message(make_message(message_id="live", timestamp=400))
    store.ingest_message(make_message(message_id="b", timestamp=200))

    page = [
        make_message(message_id="a", timestamp=100),
        make_message(message_id="b", timestamp=200),
        make_message(message_id="c", timestamp=300),
    ]
    merged = store.ingest_history_page("123", page, next_cursor=100)

    assert ids(merged) == ["a", "b", "c", "live"]
    assert ids(store.get_messages("123")) == ["a", "b", "c", "live"]
    assert store.next_cursor("123") == 100


def test_history_page_publishes_history_loaded(bus, store: SyncStore):
    rec = Recorder(bus, HistoryLoaded)
    store.ingest_history_page("123", [make_message(message_id="a")], next_cursor=None)

    [event] = rec.of(HistoryLoaded)
    assert event.contact_id == "123"
    assert event.next_cursor is None
    assert ids(event.messages) == ["a"]


def test_thread_updated_only_for_active_contact(bus, store: SyncStore):
    rec = Recorder(bus, ThreadUpdated)
    store.ingest_message(make_message(message_id="a", contact_id="123"))
    assert rec.of(ThreadUpdated) == []

    store.set_active_contact("123")
    store.ingest_message(make_message(message_id="b", contact_id="123", timestamp=200))
    store.ingest_message(make_message(message_id="z", contact_id="999", timestamp=300))

    [event] = rec.of(ThreadUpdated)
    assert event.contact_id == "123"
    assert ids(event.messages) == ["a", "b"]


def test_upsert_contacts_publishes_full_list(bus, store: SyncStore):
    rec = Recorder(bus, ContactsChanged)
    store.upsert_contacts([make_contact("1"), make_contact("2")])
    store.upsert_contacts([make_contact("2", name="Bob")])

    assert len(rec.of(ContactsChanged)[-1].contacts) == 2
    assert store.get_contact("2").name == "Bob"


def test_patch_unknown_contact_creates_stub(bus, store: SyncStore):
    rec = Recorder(bus, ContactUpdated)
    contact = store.patch_contact("555", custom_name="Alice")

    assert contact.id == "555"
    assert contact.display_name == "Alice"
    assert rec.of(ContactUpdated)[0].contact == contact


def test_patch_ignores_unknown_fields(store: SyncStore):
    store.upsert_contacts([make_contact("1", name="Ann")])
    contact = store.patch_contact("1", is_favorite=True, colour="red")

    assert contact.is_favorite is True
    assert contact.name == "Ann"


def test_contacts_by_recency(store: SyncStore):
    store.upsert_contacts([make_contact("silent")])
    store.ingest_message(make_message(message_id="a", contact_id="old", timestamp=100))
    store.ingest_message(make_message(message_id="b", contact_id="new", timestamp=900))

    assert [c.id for c in store.contacts_by_recency()] == ["new", "old", "silent"]


@pytest.mark.parametrize(
    "updates, expected",
    [
        ([MessageStatus.DELIVERED, MessageStatus.READ], MessageStatus.READ),
        ([MessageStatus.READ, MessageStatus.DELIVERED], MessageStatus.READ),
        ([MessageStatus.DELIVERED, MessageStatus.FAILED], MessageStatus.FAILED),
        ([MessageStatus.FAILED, MessageStatus.READ], MessageStatus.FAILED),
    ],
)
def test_status_is_monotonic(store: SyncStore, updates, expected):
    store.ingest_message(make_message(message_id="m", direction=Direction.OUTGOING))
    for status in updates:
        store.apply_status("m", status)

    assert store.find_message("m")[1].status == expected


def test_status_refreshes_contact_last_message(bus, store: SyncStore):
    rec = Recorder(bus, MessageStatusChanged)
    store.ingest_message(make_message(message_id="m", direction=Direction.OUTGOING))

    assert store.apply_status("m", MessageStatus.READ) is True
    assert store.get_contact("123").last_message.status == MessageStatus.READ
    assert rec.of(MessageStatusChanged)[0].status == MessageStatus.READ


def test_status_for_unknown_message_is_dropped(store: SyncStore):
    assert store.apply_status("ghost", MessageStatus.READ) is False


def test_reaction_set_and_removed(bus, store: SyncStore):
    rec = Recorder(bus, ReactionChanged)
    store.ingest_message(make_message(message_id="m"))

    store.apply_reaction("m", "123", "👍")
    assert store.find_message("m")[1].reactions == {"123": "👍"}

    store.apply_reaction("m", "123", "❤️")
    assert store.find_message("m")[1].reactions == {"123": "❤️"}

    store.apply_reaction("m", "123", "")
    assert store.find_message("m")[1].reactions == {}
    assert len(rec.of(ReactionChanged)) == 3


def test_reaction_for_unknown_message_is_dropped(store: SyncStore):
    assert store.apply_reaction("ghost", "123", "👍") is False


def test_clear_thread_drops_messages_and_cursor(store: SyncStore):
    store.ingest_history_page("123", [make_message(message_id="a")], next_cursor=100)
    store.clear_thread("123")

    assert store.get_messages("123") == []
    assert store.next_cursor("123") is None


def test_returned_lists_are_copies(store: SyncStore):
    store.ingest_message(make_message(message_id="a"))
    store.get_messages("123").clear()

    assert ids(store.get_messages("123")) == ["a"]
