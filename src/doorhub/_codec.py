"""Line codec for the hub datagram protocol.

Outbound::

    <MODULE> COMMAND <CORRELATION_ID> <TARGET> <ACTION>\\n

Inbound::

    <MODULE> FEEDBACK <CORRELATION_ID> <TARGET> <ACTION...>
    <MODULE> EVENT <TARGET> <EVENT...>
    <MODULE> HEARTBEAT
    <MODULE> HELLO

Every datagram is one complete UTF-8 line; there is no stream framing.
"""

from __future__ import annotations

import logging

from doorhub._constants import (
    DEFAULT_ACTION,
    DEFAULT_MODULE_ID,
    DEFAULT_TARGET,
    WIRE_COMMAND,
    WIRE_EVENT,
    WIRE_FEEDBACK,
    WIRE_HEARTBEAT,
    WIRE_HELLO,
)
from doorhub.exceptions import DoorHubDecodeError
from doorhub.models.messages import (
    EventMessage,
    FeedbackMessage,
    HeartbeatMessage,
    HelloMessage,
    InboundMessage,
    RawMessage,
)

_logger = logging.getLogger(__name__)


def encode_command(
    module_id: str | None,
    correlation_id: int,
    target: str | None = None,
    action: str | None = None,
) -> bytes:
    """Serialize a COMMAND line. The correlation id is assigned by the caller."""
    module = (module_id or "").strip() or DEFAULT_MODULE_ID
    tgt = (target or "").strip() or DEFAULT_TARGET
    act = (action or "").strip() or DEFAULT_ACTION
    return f"{module} {WIRE_COMMAND} {correlation_id} {tgt} {act}\n".encode()


def encode_raw(text: str) -> bytes:
    """Encode a caller-supplied line verbatim (diagnostic passthrough)."""
    return str(text).encode()


def _decode_feedback(tokens: list[str], raw: str) -> FeedbackMessage:
    try:
        correlation_id = int(tokens[2])
    except ValueError as exc:
        raise DoorHubDecodeError(f"non-numeric correlation id {tokens[2]!r}", raw=raw) from exc
    return FeedbackMessage(
        module_id=tokens[0],
        correlation_id=correlation_id,
        target=tokens[3],
        raw_action=" ".join(tokens[4:]),
        raw=raw,
    )


def decode_datagram(data: bytes | str) -> InboundMessage:
    """Parse one datagram into a typed message.

    Never raises: anything malformed becomes a :class:`RawMessage`.
    """
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    raw = text.strip()
    tokens = raw.split()

    if len(tokens) < 2:
        return RawMessage(raw=raw)

    module_id, kind = tokens[0], tokens[1]

    if kind == WIRE_FEEDBACK and len(tokens) >= 5:
        try:
            return _decode_feedback(tokens, raw)
        except DoorHubDecodeError as exc:
            _logger.warning("Demoting malformed FEEDBACK to RAW: %s (raw=%r)", exc, exc.raw)
            return RawMessage(module_id=module_id, raw=raw)

    if kind == WIRE_EVENT and len(tokens) >= 4:
        return EventMessage(
            module_id=module_id,
            target=tokens[2],
            raw_event=" ".join(tokens[3:]),
            raw=raw,
        )

    if kind == WIRE_HEARTBEAT:
        return HeartbeatMessage(module_id=module_id, raw=raw)

    if kind == WIRE_HELLO:
        return HelloMessage(module_id=module_id, raw=raw)

    return RawMessage(module_id=module_id, raw=raw)
