from __future__ import annotations

from typing import Callable, Protocol

from chat_sync.domain.value_objects.enums import MediaConnectionState

ConnectionListener = Callable[[MediaConnectionState], None]


class MediaSession(Protocol):
    """A peer connection with the local audio track attached."""

    async def create_offer(self) -> None:
        """Create an offer and set it as the local description."""
        ...

    async def create_answer(self, remote_offer_sdp: str) -> None:
        """Apply the remote offer, create an answer and set it locally."""
        ...

    async def apply_answer(self, sdp: str) -> None: ...

    async def wait_ice_gathering_complete(self) -> None: ...

    def local_sdp(self) -> str: ...

    def set_connection_listener(self, listener: ConnectionListener) -> None: ...

    def set_muted(self, muted: bool) -> None: ...

    async def close(self) -> None: ...


class MediaStack(Protocol):
    async def open_session(self) -> MediaSession:
        """Acquire the microphone and create a session.

        Raises MediaAcquisitionError when audio is unavailable.
        """
        ...
