"""WebRTC audio sessions on aiortc: microphone in, remote audio drained."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from aiortc import (
    MediaStreamTrack,
    RTCConfiguration,
    RTCIceServer,
    RTCPeerConnection,
    RTCSessionDescription,
)
from aiortc.contrib.media import MediaBlackhole, MediaPlayer
from av.frame import Frame

from chat_sync.application.exceptions import MediaAcquisitionError
from chat_sync.application.ports.media import ConnectionListener
from chat_sync.domain.value_objects.enums import MediaConnectionState

logger = logging.getLogger(__name__)

TrackFactory = Callable[[], MediaStreamTrack]


class MutableAudioTrack(MediaStreamTrack):
    """Forwards a source track, sending silence while muted."""

    kind = "audio"

    def __init__(self, source: MediaStreamTrack) -> None:
        super().__init__()
        self._source = source
        self.muted = False

    async def recv(self) -> Frame:
        frame = await self._source.recv()
        if self.muted:
            for plane in frame.planes:
                plane.update(bytes(plane.buffer_size))
        return frame

    def stop(self) -> None:
        super().stop()
        self._source.stop()


class AiortcMediaSession:
    """Implements application.ports.media.MediaSession."""

    def __init__(self, pc: RTCPeerConnection, track: MutableAudioTrack) -> None:
        self._pc = pc
        self._track = track
        self._sink = MediaBlackhole()
        self._listener: ConnectionListener | None = None
        self._ice_complete = asyncio.Event()

        pc.addTrack(track)
        pc.on("connectionstatechange", self._on_connection_state)
        pc.on("icegatheringstatechange", self._on_ice_gathering_state)
        pc.on("track", self._on_track)

    async def create_offer(self) -> None:
        offer = await self._pc.createOffer()
        await self._pc.setLocalDescription(offer)

    async def create_answer(self, remote_offer_sdp: str) -> None:
        await self._pc.setRemoteDescription(RTCSessionDescription(sdp=remote_offer_sdp, type="offer"))
        answer = await self._pc.createAnswer()
        await self._pc.setLocalDescription(answer)

    async def apply_answer(self, sdp: str) -> None:
        await self._pc.setRemoteDescription(RTCSessionDescription(sdp=sdp, type="answer"))

    async def wait_ice_gathering_complete(self) -> None:
        if self._pc.iceGatheringState == "complete":
            return
        await self._ice_complete.wait()

    def local_sdp(self) -> str:
        description = self._pc.localDescription
        return description.sdp if description else ""

    def set_connection_listener(self, listener: ConnectionListener) -> None:
        self._listener = listener

    def set_muted(self, muted: bool) -> None:
        self._track.muted = muted

    async def close(self) -> None:
        await self._sink.stop()
        await self._pc.close()
        self._track.stop()

    def _on_connection_state(self) -> None:
        try:
            state = MediaConnectionState(self._pc.connectionState)
        except ValueError:
            logger.debug("Unmapped connection state %s", self._pc.connectionState)
            return
        if self._listener is not None:
            self._listener(state)

    def _on_ice_gathering_state(self) -> None:
        if self._pc.iceGatheringState == "complete":
            self._ice_complete.set()

    async def _on_track(self, track: MediaStreamTrack) -> None:
        if track.kind != "audio":
            return
        logger.debug("Remote audio track received")
        self._sink.addTrack(track)
        await self._sink.start()


class AiortcMediaStack:
    """Implements application.ports.media.MediaStack.

    The microphone is opened through FFmpeg (``MediaPlayer``), e.g. device
    ``default`` with format ``pulse`` on Linux or ``:0`` with
    ``avfoundation`` on macOS.
    """

    def __init__(
        self,
        *,
        ice_servers: Sequence[str] = (),
        input_device: str = "default",
        input_format: str | None = "pulse",
        track_factory: TrackFactory | None = None,
    ) -> None:
        self._ice_servers = list(ice_servers)
        self._input_device = input_device
        self._input_format = input_format
        self._track_factory = track_factory or self._open_microphone

    async def open_session(self) -> AiortcMediaSession:
        try:
            source = self._track_factory()
        except Exception as exc:
            raise MediaAcquisitionError(f"Could not open audio input {self._input_device}: {exc}") from exc

        pc = RTCPeerConnection(
            RTCConfiguration(iceServers=[RTCIceServer(urls=url) for url in self._ice_servers])
        )
        logger.info("Media session opened on %s", self._input_device)
        return AiortcMediaSession(pc, MutableAudioTrack(source))

    def _open_microphone(self) -> MediaStreamTrack:
        player = MediaPlayer(self._input_device, format=self._input_format)
        if player.audio is None:
            raise ValueError("device has no audio stream")
        return player.audio
