"""Audio call negotiation over the transport channel.

States::

    idle -> outgoing -> active -> idle     (caller)
    idle -> incoming -> active -> idle     (callee)

Any non-idle state returns to idle on reject, end, remote hangup or media
failure. Only one session exists at a time.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import replace

from chat_sync.application.dto.commands import CallAccept, CallReject, CallStart
from chat_sync.application.exceptions import CallStateError, MediaAcquisitionError
from chat_sync.application.ports.bus import EventPublisher
from chat_sync.application.ports.media import MediaSession, MediaStack
from chat_sync.application.ports.transport import CommandSender
from chat_sync.domain.entities.call_session import CallSession
from chat_sync.domain.events.session_events import CallStateChanged
from chat_sync.domain.value_objects.enums import CallState, Direction, MediaConnectionState

logger = logging.getLogger(__name__)

# How long a hung-up offer waits for its late call_created before being forgotten.
ORPHANED_OFFER_TTL = 30.0


class CallSignalingMachine:
    def __init__(
        self,
        media_stack: MediaStack,
        sender: CommandSender,
        bus: EventPublisher,
        *,
        ice_timeout: float = 5.0,
    ) -> None:
        self._media_stack = media_stack
        self._sender = sender
        self._bus = bus
        self._ice_timeout = ice_timeout

        self._session: CallSession | None = None
        self._media: MediaSession | None = None
        self._negotiating = False
        self._pending_call_id: str | None = None
        self._answer_applied = False
        # Bumped on every release; in-progress setups compare against it.
        self._generation = 0
        self._tasks: set[asyncio.Task[None]] = set()
        # Offers sent and hung up before the provider assigned a call id.
        self._orphaned_offers: deque[float] = deque()

    @property
    def state(self) -> CallState:
        return self._session.state if self._session else CallState.IDLE

    @property
    def session(self) -> CallSession | None:
        return self._session

    @property
    def busy(self) -> bool:
        return self._negotiating or self._session is not None

    # --- caller path ---

    async def start_call(self, contact_id: str, contact_name: str | None = None) -> CallSession | None:
        """Open media, gather an offer and send it.

        Returns None if the call was ended while the offer was being prepared.
        """
        if self.busy:
            raise CallStateError(f"Cannot start a call while {self.state}")

        self._negotiating = True
        generation = self._generation
        try:
            media = await self._open_media(generation)
            if self._stale(generation):
                return await self._abandon(media)

            await media.create_offer()
            await self._wait_for_ice(media)
            if self._stale(generation):
                return await self._abandon()

            self._negotiating = False
            self._transition(
                CallSession(
                    direction=Direction.OUTGOING,
                    state=CallState.OUTGOING,
                    contact_id=contact_id,
                    contact_name=contact_name,
                    call_id=self._pending_call_id,
                )
            )
            sdp = media.local_sdp()
        except BaseException:
            if not self._stale(generation):
                await self._release()
            raise

        try:
            await self._sender.send(CallStart(to=contact_id, sdp=sdp))
        except Exception:
            logger.exception("Failed to send call offer to %s", contact_id)
            await self._release()
            raise
        logger.info("Call offer sent to %s", contact_id)
        return self._session

    async def on_call_created(self, call_id: str) -> None:
        """Attach the provider-assigned call id, which may arrive at any point.

        An id that belongs to an offer the user already hung up is rejected so
        the callee stops ringing.
        """
        if self._take_orphaned_offer():
            logger.info("call_created %s for a call already hung up, rejecting", call_id)
            await self._sender.send(CallReject(call_id=call_id))
            return
        if self._session is None:
            if self._negotiating:
                self._pending_call_id = call_id
            else:
                logger.debug("call_created %s with no call in progress, ignoring", call_id)
            return
        if self._session.call_id is None and self._session.direction == Direction.OUTGOING:
            self._transition(replace(self._session, call_id=call_id))
        elif self._session.call_id != call_id:
            logger.warning(
                "call_created %s does not match current call %s", call_id, self._session.call_id,
            )

    async def on_remote_answer(self, call_id: str | None, sdp: str | None) -> bool:
        session = self._session
        if session is None or session.state != CallState.OUTGOING or self._media is None:
            logger.warning("Answer for call %s received while %s, ignoring", call_id, self.state)
            return False
        if session.call_id and call_id and call_id != session.call_id:
            logger.warning("Answer for call %s does not match current call %s", call_id, session.call_id)
            return False
        if not sdp:
            logger.warning("Answer for call %s carries no SDP", call_id)
            return False

        if session.call_id is None and call_id:
            self._transition(replace(session, call_id=call_id))
        # The media layer may report "connected" before apply_answer returns.
        self._answer_applied = True
        try:
            await self._media.apply_answer(sdp)
        except BaseException:
            self._answer_applied = False
            raise
        logger.info("Remote answer applied for call %s, waiting for media", call_id)
        return True

    # --- callee path ---

    async def on_incoming_call(
        self,
        call_id: str,
        remote_sdp: str | None,
        caller_id: str | None = None,
        caller_name: str | None = None,
    ) -> bool:
        held = self._session.call_id if self._session else self._pending_call_id
        if held == call_id:
            logger.debug("Duplicate call_incoming for %s, ignoring", call_id)
            return False
        if self.busy:
            logger.warning("Rejecting call %s from %s: busy (%s)", call_id, caller_id, self.state)
            await self._sender.send(CallReject(call_id=call_id))
            return False
        if not remote_sdp:
            logger.warning("Incoming call %s carries no offer, ignoring", call_id)
            return False

        self._transition(
            CallSession(
                direction=Direction.INCOMING,
                state=CallState.INCOMING,
                contact_id=caller_id,
                contact_name=caller_name or caller_id,
                call_id=call_id,
                remote_sdp=remote_sdp,
            )
        )
        logger.info("Incoming call %s from %s", call_id, caller_id)
        return True

    async def accept_call(self) -> CallSession | None:
        session = self._session
        if session is None or session.state != CallState.INCOMING or self._negotiating:
            raise CallStateError(f"Cannot accept a call while {self.state}")
        assert session.call_id is not None and session.remote_sdp is not None

        self._negotiating = True
        generation = self._generation
        try:
            media = await self._open_media(generation)
            if self._stale(generation):
                return await self._abandon(media)

            await media.create_answer(session.remote_sdp)
            await self._wait_for_ice(media)
            if self._stale(generation):
                return await self._abandon()

            self._negotiating = False
            self._transition(replace(session, state=CallState.ACTIVE))
            sdp = media.local_sdp()
        except BaseException:
            if not self._stale(generation):
                await self._reject_after_failure(session.call_id)
            raise

        try:
            await self._sender.send(CallAccept(call_id=session.call_id, sdp=sdp))
        except Exception:
            logger.exception("Failed to send answer for call %s", session.call_id)
            await self._release()
            raise
        logger.info("Call %s accepted", session.call_id)
        return self._session

    # --- teardown ---

    async def reject_call(self) -> None:
        await self.end_call()

    async def end_call(self) -> None:
        """Hang up locally and tell the remote side. Safe to call repeatedly."""
        if not self.busy:
            return
        call_id = self._session.call_id if self._session else self._pending_call_id
        if call_id is None and self._session is not None and self._session.direction == Direction.OUTGOING:
            self._orphaned_offers.append(time.monotonic())
        try:
            if call_id:
                await self._sender.send(CallReject(call_id=call_id))
        finally:
            await self._release()

    async def on_remote_ended(self, call_id: str | None = None) -> bool:
        if not self.busy:
            return False
        held = self._session.call_id if self._session else self._pending_call_id
        if call_id and held and call_id != held:
            logger.warning("call_ended for %s does not match current call %s", call_id, held)
            return False
        logger.info("Call %s ended remotely", held)
        await self._release()
        return True

    def set_muted(self, muted: bool) -> None:
        if self._media is not None:
            self._media.set_muted(muted)
        if self._session is not None and self._session.muted != muted:
            self._transition(replace(self._session, muted=muted))

    # --- internals ---

    async def _open_media(self, generation: int) -> MediaSession:
        try:
            media = await self._media_stack.open_session()
        except MediaAcquisitionError:
            raise
        except Exception as exc:
            raise MediaAcquisitionError(f"Could not open audio: {exc}") from exc

        if generation == self._generation:
            self._media = media
            media.set_connection_listener(
                lambda state: self._on_media_state(generation, state)
            )
        return media

    def _take_orphaned_offer(self) -> bool:
        now = time.monotonic()
        while self._orphaned_offers and now - self._orphaned_offers[0] > ORPHANED_OFFER_TTL:
            self._orphaned_offers.popleft()
        if not self._orphaned_offers:
            return False
        self._orphaned_offers.popleft()
        return True

    def _stale(self, generation: int) -> bool:
        return generation != self._generation

    async def _abandon(self, media: MediaSession | None = None) -> None:
        """Drop a setup that was overtaken by a hangup."""
        logger.info("Call setup abandoned after hangup")
        if media is not None:
            await media.close()
        return None

    async def _reject_after_failure(self, call_id: str) -> None:
        try:
            await self._sender.send(CallReject(call_id=call_id))
        except Exception:
            logger.exception("Failed to reject call %s after setup failure", call_id)
        await self._release()

    async def _wait_for_ice(self, media: MediaSession) -> bool:
        try:
            await asyncio.wait_for(media.wait_ice_gathering_complete(), self._ice_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "ICE gathering incomplete after %.1fs, continuing with gathered candidates",
                self._ice_timeout,
            )
            return False
        return True

    def _on_media_state(self, generation: int, state: MediaConnectionState) -> None:
        if generation != self._generation or self._session is None:
            return
        logger.debug("Media connection state: %s", state)
        if state == MediaConnectionState.CONNECTED:
            if self._session.state == CallState.OUTGOING and self._answer_applied:
                self._transition(replace(self._session, state=CallState.ACTIVE))
        elif state == MediaConnectionState.FAILED:
            logger.warning("Media connection failed for call %s", self._session.call_id)
            task = asyncio.ensure_future(self.end_call())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def _transition(self, session: CallSession) -> None:
        previous = self.state
        self._session = session
        if previous != session.state:
            logger.info("Call state %s -> %s", previous, session.state)
        self._bus.publish(CallStateChanged(state=session.state, session=session))

    async def _release(self) -> None:
        self._generation += 1
        media, self._media = self._media, None
        had_call = self._session is not None or self._negotiating
        self._session = None
        self._negotiating = False
        self._pending_call_id = None
        self._answer_applied = False

        if had_call:
            self._bus.publish(CallStateChanged(state=CallState.IDLE, session=None))
        if media is not None:
            try:
                await media.close()
            except Exception:
                logger.exception("Error closing media session")
