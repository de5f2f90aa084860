from __future__ import annotations

import pytest

from chat_sync.application.dto.commands import CallReject
from chat_sync.application.dto.events import (
    CallAnswered,
    CallCreated,
    CallEnded,
    CallIncoming,
    ContactPatchReceived,
    ContactsReceived,
    ErrorReceived,
    IdUpdateReceived,
    MessageReceived,
    MessagesLoaded,
    ReactionReceived,
    StatusReceived,
    TypingReceived,
)
from chat_sync.domain.events.contacts_changed import TypingChanged
from chat_sync.domain.events.session_events import ErrorReported
from chat_sync.domain.value_objects.enums import CallState, Direction, MessageStatus
from chat_sync.services.call_signaling import CallSignalingMachine
from chat_sync.services.event_dispatcher import EventDispatcher
from chat_sync.services.identity_reconciler import IdentityReconciler
from chat_sync.services.pagination import PaginationCursorManager
from tests.conftest import Recorder, make_contact, make_message


@pytest.fixture
def calls(media, transport, bus) -> CallSignalingMachine:
    return CallSignalingMachine(media, transport, bus, ice_timeout=0.05)


@pytest.fixture
def pager(store, transport, clock) -> PaginationCursorManager:
    return PaginationCursorManager(store, transport, clock, page_size=2)


@pytest.fixture
def dispatcher(store, bus, pager, calls) -> EventDispatcher:
    return EventDispatcher(store, IdentityReconciler(store, bus), pager, calls, bus)


@pytest.mark.asyncio
async def test_contacts_and_patch(dispatcher, store):
    await dispatcher.dispatch(ContactsReceived(contacts=(make_contact("1", name="Ann"),)))
    await dispatcher.dispatch(ContactPatchReceived(contact_id="1", changes={"custom_name": "Boss"}))

    assert store.get_contact("1").display_name == "Boss"


@pytest.mark.asyncio
async def test_message_status_reaction_and_remap(dispatcher, store):
    msg = make_message(message_id="wamid_tmp", direction=Direction.OUTGOING)

    await dispatcher.dispatch(MessageReceived(message=msg))
    await dispatcher.dispatch(IdUpdateReceived(old_id="wamid_tmp", new_id="wamid.REAL"))
    await dispatcher.dispatch(StatusReceived(message_id="wamid.REAL", status=MessageStatus.READ))
    await dispatcher.dispatch(ReactionReceived(message_id="wamid.REAL", reactor="123", emoji="👍"))

    [stored] = store.get_messages("123")
    assert stored.id == "wamid.REAL"
    assert stored.status == MessageStatus.READ
    assert stored.reactions == {"123": "👍"}


@pytest.mark.asyncio
async def test_messages_loaded_goes_through_pager(dispatcher, store, pager):
    await pager.load_initial("123")
    page = (make_message(message_id="a", timestamp=100), make_message(message_id="b", timestamp=200))

    await dispatcher.dispatch(MessagesLoaded(contact_id="123", messages=page, next_cursor=None))

    assert store.next_cursor("123") == 100
    assert not pager.is_loading("123")


@pytest.mark.asyncio
async def test_call_events(dispatcher, calls, transport):
    await dispatcher.dispatch(CallIncoming(call_id="c1", remote_sdp="v=0", caller_id="123"))
    assert calls.state == CallState.INCOMING

    await dispatcher.dispatch(CallIncoming(call_id="c2", remote_sdp="v=0", caller_id="456"))
    assert transport.sent == [CallReject(call_id="c2")]

    await dispatcher.dispatch(CallEnded(call_id="c1"))
    assert calls.state == CallState.IDLE


@pytest.mark.asyncio
async def test_outgoing_call_events(dispatcher, calls, media):
    await calls.start_call("123")

    await dispatcher.dispatch(CallCreated(call_id="c1"))
    await dispatcher.dispatch(CallAnswered(call_id="c1", sdp="v=0 answer"))

    assert calls.session.call_id == "c1"
    assert media.last.applied_answer == "v=0 answer"


@pytest.mark.asyncio
async def test_typing_and_error_are_published(dispatcher, bus):
    rec = Recorder(bus, TypingChanged, ErrorReported)

    await dispatcher.dispatch(TypingReceived(contact_id="1", is_typing=True))
    await dispatcher.dispatch(ErrorReceived(message="rate limited"))

    assert rec.events == [TypingChanged(contact_id="1", is_typing=True), ErrorReported(message="rate limited")]


@pytest.mark.asyncio
async def test_referential_miss_is_not_fatal(dispatcher, store):
    await dispatcher.dispatch(StatusReceived(message_id="ghost", status=MessageStatus.READ))
    await dispatcher.dispatch(ReactionReceived(message_id="ghost", reactor="1", emoji="👍"))

    assert list(store.threads()) == []


@pytest.mark.asyncio
async def test_handler_error_is_logged_and_dropped(dispatcher, store, transport):
    transport.fail_sends = True
    await dispatcher.dispatch(ContactsReceived(contacts=(make_contact("1"),)))

    # busy-reject send fails inside the call machine
    await dispatcher.dispatch(CallIncoming(call_id="c1", remote_sdp="v=0", caller_id="1"))
    await dispatcher.dispatch(CallIncoming(call_id="c2", remote_sdp="v=0", caller_id="2"))

    assert store.get_contact("1") is not None
