"""Outbound message construction and user actions."""
from __future__ import annotations

import logging
from typing import Any, Sequence

from chat_sync.application.dto.commands import (
    OutboundCommand,
    ReadReceipt,
    ReplyContext,
    SendInteractive,
    SendMedia,
    SendReaction,
    SendTemplate,
    SendText,
    ToggleFavorite,
    Typing,
    UpdateContact,
)
from chat_sync.application.exceptions import ValidationError
from chat_sync.application.policies.messaging_window import DEFAULT_WINDOW_MS, assert_can_send
from chat_sync.application.ports.clock import Clock
from chat_sync.application.ports.transport import CommandSender
from chat_sync.domain.value_objects.enums import MEDIA_TYPES, MessageType
from chat_sync.services.sync_store import SyncStore

logger = logging.getLogger(__name__)

MAX_REPLY_BUTTONS = 3


def build_text(to: str, text: str, replying_to: str | None = None) -> SendText:
    return SendText(
        to=to,
        content=text,
        context=ReplyContext(message_id=replying_to) if replying_to else None,
    )


def build_media(
    to: str,
    media_type: MessageType,
    media_id: str,
    *,
    caption: str | None = None,
    file_name: str | None = None,
    is_voice_note: bool | None = None,
    replying_to: str | None = None,
) -> SendMedia:
    if media_type not in MEDIA_TYPES:
        raise ValidationError(f"{media_type} is not a media type")
    return SendMedia(
        type=media_type.value,
        to=to,
        content=media_id,
        caption=caption,
        file_name=file_name if media_type == MessageType.DOCUMENT else None,
        is_voice_note=is_voice_note if media_type == MessageType.AUDIO else None,
        context=ReplyContext(message_id=replying_to) if replying_to else None,
    )


def build_template(
    to: str,
    template_name: str,
    language: str = "en_US",
    components: Sequence[dict[str, Any]] = (),
) -> SendTemplate:
    return SendTemplate(
        to=to,
        template_name=template_name,
        language_code=language,
        components=list(components),
    )


def build_buttons(
    to: str,
    body_text: str,
    buttons: Sequence[str],
    header_text: str | None = None,
    footer_text: str | None = None,
) -> SendInteractive:
    if not buttons or len(buttons) > MAX_REPLY_BUTTONS:
        raise ValidationError(f"Button messages need 1-{MAX_REPLY_BUTTONS} buttons")
    interactive: dict[str, Any] = {
        "type": "button",
        "body": {"text": body_text},
        "action": {
            "buttons": [
                {"type": "reply", "reply": {"id": f"btn_{i}", "title": title}}
                for i, title in enumerate(buttons)
            ]
        },
    }
    if header_text:
        interactive["header"] = {"type": "text", "text": header_text}
    if footer_text:
        interactive["footer"] = {"text": footer_text}
    return SendInteractive(to=to, interactive=interactive)


def build_list(
    to: str,
    body_text: str,
    button_text: str,
    sections: Sequence[dict[str, Any]],
) -> SendInteractive:
    """Sections are ``{"title": ..., "rows": [{"id", "title", "description"?}]}``."""
    if not sections:
        raise ValidationError("List messages need at least one section")
    return SendInteractive(
        to=to,
        interactive={
            "type": "list",
            "body": {"text": body_text},
            "action": {"button": button_text, "sections": list(sections)},
        },
    )


class OutboundService:
    def __init__(
        self,
        sender: CommandSender,
        store: SyncStore,
        clock: Clock,
        *,
        self_id: str = "me",
        enforce_window: bool = True,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> None:
        self._sender = sender
        self._store = store
        self._clock = clock
        self._self_id = self_id
        self._enforce_window = enforce_window
        self._window_ms = window_ms

    def _check_window(self, to: str, message_type: MessageType) -> None:
        if not self._enforce_window:
            return
        assert_can_send(self._store.get_contact(to), message_type, self._clock.now_ms(), self._window_ms)

    async def _send(self, command: OutboundCommand) -> None:
        logger.debug("Sending %s", command.type)
        await self._sender.send(command)

    async def send_text(self, to: str, text: str, replying_to: str | None = None) -> None:
        self._check_window(to, MessageType.TEXT)
        await self._send(build_text(to, text, replying_to))

    async def send_media(self, to: str, media_type: MessageType, media_id: str, **kwargs: Any) -> None:
        command = build_media(to, media_type, media_id, **kwargs)
        self._check_window(to, media_type)
        await self._send(command)

    async def send_template(
        self,
        to: str,
        template_name: str,
        language: str = "en_US",
        components: Sequence[dict[str, Any]] = (),
    ) -> None:
        await self._send(build_template(to, template_name, language, components))

    async def send_interactive(self, command: SendInteractive) -> None:
        self._check_window(command.to, MessageType.INTERACTIVE)
        await self._send(command)

    async def send_typing(self, to: str, is_typing: bool) -> None:
        await self._send(Typing(to=to, state=is_typing))

    async def send_read_receipt(self, message_id: str) -> None:
        await self._send(ReadReceipt(message_id=message_id))

    async def send_reaction(self, to: str, message_id: str, emoji: str) -> None:
        """Send a reaction and apply it locally right away."""
        await self._send(SendReaction(to=to, message_id=message_id, emoji=emoji))
        self._store.apply_reaction(message_id, self._self_id, emoji)

    async def update_contact_name(self, contact_id: str, name: str) -> None:
        await self._send(UpdateContact(contact_id=contact_id, name=name))

    async def toggle_favorite(self, contact_id: str) -> None:
        await self._send(ToggleFavorite(contact_id=contact_id))
