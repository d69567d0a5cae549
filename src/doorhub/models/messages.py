"""Typed inbound hub messages.

One instance is built per received datagram by :mod:`doorhub._codec`
and consumed once by the session. Nothing here is persisted.
"""

from __future__ import annotations

import enum
from typing import Literal

from doorhub.models._base import DoorHubBaseModel


class MessageType(enum.StrEnum):
    FEEDBACK = "FEEDBACK"
    EVENT = "EVENT"
    HEARTBEAT = "HEARTBEAT"
    HELLO = "HELLO"
    RAW = "RAW"


class FeedbackMessage(DoorHubBaseModel):
    """``<MODULE> FEEDBACK <CORRELATION_ID> <TARGET> <ACTION...>``"""

    type: Literal[MessageType.FEEDBACK] = MessageType.FEEDBACK
    module_id: str
    correlation_id: int
    target: str
    raw_action: str


class EventMessage(DoorHubBaseModel):
    """``<MODULE> EVENT <TARGET> <EVENT...>``, e.g. ``D1 EVENT D0 DOOR OPEN``."""

    type: Literal[MessageType.EVENT] = MessageType.EVENT
    module_id: str
    target: str
    raw_event: str


class HeartbeatMessage(DoorHubBaseModel):
    type: Literal[MessageType.HEARTBEAT] = MessageType.HEARTBEAT
    module_id: str


class HelloMessage(DoorHubBaseModel):
    type: Literal[MessageType.HELLO] = MessageType.HELLO
    module_id: str


class RawMessage(DoorHubBaseModel):
    """Anything that did not decode into a typed message."""

    type: Literal[MessageType.RAW] = MessageType.RAW
    module_id: str | None = None


InboundMessage = FeedbackMessage | EventMessage | HeartbeatMessage | HelloMessage | RawMessage
