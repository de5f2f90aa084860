"""Rewrites provisional message ids to the provider's canonical ids."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from chat_sync.application.ports.bus import EventPublisher
from chat_sync.domain.entities.message import Message, MessageContext
from chat_sync.domain.events.thread_updated import MessageIdRemapped
from chat_sync.domain.value_objects.enums import Direction
from chat_sync.services.sync_store import SyncStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SendConfirmation:
    """Provider acknowledgement of a send, as recorded in the sent log."""

    canonical_id: str
    to: str
    content: str
    timestamp: int


@dataclass(frozen=True, slots=True)
class Candidate:
    contact_id: str
    message: Message
    diff_ms: int


@dataclass(frozen=True, slots=True)
class CorrelationResult:
    confirmation: SendConfirmation
    candidates: tuple[Candidate, ...]
    match: Candidate | None
    confidence: float

    @property
    def resolved(self) -> bool:
        return self.match is not None


def _rewrite(msg: Message, old_id: str, new_id: str, *, rename: bool = True) -> Message:
    if rename and msg.id == old_id:
        msg = replace(msg, id=new_id)
    if msg.context is not None and msg.context.message_id == old_id:
        msg = replace(msg, context=MessageContext(message_id=new_id))
    return msg


class IdentityReconciler:
    def __init__(
        self,
        store: SyncStore,
        bus: EventPublisher,
        *,
        provisional_prefix: str = "wamid_",
        tolerance_ms: int = 5000,
    ) -> None:
        self._store = store
        self._bus = bus
        self._prefix = provisional_prefix
        self._tolerance_ms = tolerance_ms

    def remap_id(self, old_id: str, new_id: str) -> tuple[str, ...]:
        """Rename a message and every reply reference to it.

        Returns the ids of contacts whose thread changed. Applying the same
        remap twice changes nothing the second time.
        """
        if old_id == new_id:
            return ()

        changed: list[str] = []
        for contact_id, thread in self._store.threads():
            rename = True
            if any(m.id == new_id for m in thread) and any(m.id == old_id for m in thread):
                logger.warning(
                    "Thread %s already holds %s, keeping %s unrenamed", contact_id, new_id, old_id,
                )
                rename = False

            rewritten = [_rewrite(m, old_id, new_id, rename=rename) for m in thread]
            if rewritten != thread:
                self._store.replace_thread(contact_id, rewritten)
                changed.append(contact_id)

        for contact in self._store.get_contacts():
            if contact.last_message is None:
                continue
            last = _rewrite(contact.last_message, old_id, new_id)
            if last != contact.last_message:
                self._store.patch_contact(contact.id, last_message=last)

        if changed:
            logger.info("Remapped message id %s -> %s in %s", old_id, new_id, changed)
        else:
            logger.debug("No message references %s, remap to %s skipped", old_id, new_id)
        self._bus.publish(MessageIdRemapped(old_id=old_id, new_id=new_id, contact_ids=tuple(changed)))
        return tuple(changed)

    def correlate(self, confirmation: SendConfirmation) -> CorrelationResult:
        """Best-effort match of a send confirmation to a provisional message.

        Only used when no direct id update was received. Candidates are
        outgoing messages to the same recipient with identical content that
        still carry a provisional id, ranked by timestamp distance. A match is
        reported only when exactly one candidate falls inside the tolerance.
        Nothing is applied here; see apply().
        """
        candidates = sorted(
            (
                Candidate(
                    contact_id=contact_id,
                    message=msg,
                    diff_ms=abs(msg.timestamp - confirmation.timestamp),
                )
                for contact_id, thread in self._store.threads()
                for msg in thread
                if msg.direction == Direction.OUTGOING
                and msg.to == confirmation.to
                and msg.content == confirmation.content
                and msg.is_provisional(self._prefix)
            ),
            key=lambda c: c.diff_ms,
        )
        viable = [c for c in candidates if c.diff_ms < self._tolerance_ms]

        logger.info(
            "Correlating %s to %s at %d: %d candidates %s",
            confirmation.canonical_id,
            confirmation.to,
            confirmation.timestamp,
            len(candidates),
            [(c.message.id, c.diff_ms) for c in candidates],
        )

        match: Candidate | None = None
        confidence = 0.0
        if len(viable) == 1:
            match = viable[0]
            confidence = 1.0 - match.diff_ms / self._tolerance_ms
        elif len(viable) > 1:
            logger.warning(
                "Ambiguous correlation for %s: %d candidates within %dms, left unresolved",
                confirmation.canonical_id,
                len(viable),
                self._tolerance_ms,
            )
        else:
            logger.warning("No viable candidate for %s", confirmation.canonical_id)

        return CorrelationResult(
            confirmation=confirmation,
            candidates=tuple(candidates),
            match=match,
            confidence=confidence,
        )

    def apply(self, result: CorrelationResult) -> bool:
        if result.match is None:
            return False
        self.remap_id(result.match.message.id, result.confirmation.canonical_id)
        return True
