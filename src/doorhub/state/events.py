"""Observer-facing events.

Every datagram the session handles, and every terminal command outcome,
is turned into one of these before it reaches a notification sink.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from doorhub.models._base import utcnow


class EventName(StrEnum):
    DOOR_FEEDBACK = "door-feedback"
    COMMAND_FEEDBACK = "command-feedback"
    COMMAND_ERROR = "command-error"
    HUB_EVENT = "hub-event"
    HUB_HEARTBEAT = "hub-heartbeat"
    HUB_HELLO = "hub-hello"
    HUB_RAW = "hub-raw"
    RAW_SENT = "raw-sent"
    DOOR_CONVERGED = "door-converged"


TERMINAL_EVENTS: frozenset[EventName] = frozenset({EventName.COMMAND_FEEDBACK, EventName.COMMAND_ERROR})


class ObserverEvent(BaseModel):
    """A named payload delivered to notification sinks."""

    model_config = ConfigDict(frozen=True)

    name: EventName
    data: dict[str, Any] = Field(default_factory=dict)
    observed_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.name in TERMINAL_EVENTS

    def to_wire(self) -> dict[str, Any]:
        return {"event": self.name.value, "data": self.data}


class ErrorKind(StrEnum):
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    CLOSED = "closed"
    INVALID = "invalid"


def command_error(
    module_id: str,
    correlation_id: int | None,
    error: str,
    *,
    kind: ErrorKind = ErrorKind.TRANSPORT,
) -> ObserverEvent:
    return ObserverEvent(
        name=EventName.COMMAND_ERROR,
        data={
            "module": module_id,
            "correlation_id": correlation_id,
            "error": error,
            "kind": kind.value,
        },
    )
