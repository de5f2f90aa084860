from __future__ import annotations

import logging

from chat_sync.application.exceptions import MediaAcquisitionError
from chat_sync.application.ports.media import MediaSession

logger = logging.getLogger(__name__)


class UnavailableMediaStack:
    """Implements application.ports.media.MediaStack for hosts without audio.

    Messaging works normally; every attempt to place or accept a call fails
    with MediaAcquisitionError and the call machine stays idle.
    """

    async def open_session(self) -> MediaSession:
        logger.warning("Audio requested but no media stack is configured")
        raise MediaAcquisitionError("No audio device available")
