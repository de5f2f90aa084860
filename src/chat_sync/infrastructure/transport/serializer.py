from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from chat_sync.application.dto.commands import OutboundCommand
from chat_sync.application.dto.events import InboundEvent
from chat_sync.application.exceptions import MalformedEventError
from chat_sync.infrastructure.transport.mappers import wire_to_event
from chat_sync.infrastructure.transport.protocol import KNOWN_EVENTS, WireEvent

logger = logging.getLogger(__name__)

_event_adapter: TypeAdapter[Any] = TypeAdapter(WireEvent)


def deserialize_event(raw: str | bytes | dict[str, Any]) -> InboundEvent | None:
    """Parse one inbound frame.

    Returns None for event kinds this client does not handle; raises
    MalformedEventError when the frame cannot be parsed.
    """
    if isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise MalformedEventError(f"invalid JSON: {exc}") from exc
    else:
        payload = raw

    if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
        raise MalformedEventError("frame has no event type")
    if payload["type"] not in KNOWN_EVENTS:
        logger.debug("Ignoring unknown event: %s", payload["type"])
        return None

    try:
        wire = _event_adapter.validate_python(payload)
    except PydanticValidationError as exc:
        raise MalformedEventError(f"invalid {payload['type']} event: {exc}") from exc
    return wire_to_event(wire)


def serialize_command(command: OutboundCommand) -> str:
    return json.dumps(command.to_wire())
