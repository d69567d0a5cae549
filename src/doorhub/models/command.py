"""Command results returned to callers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from doorhub.models.status import CanonicalStatus


class CommandFeedback(BaseModel):
    """Terminal success outcome of a correlated command."""

    model_config = ConfigDict(frozen=True)

    module_id: str
    correlation_id: int
    target: str
    status: CanonicalStatus
    raw_action: str
    raw: str = ""

    @classmethod
    def from_event_data(cls, data: dict[str, Any]) -> CommandFeedback:
        return cls(
            module_id=str(data.get("module", "")),
            correlation_id=int(data["correlation_id"]),
            target=str(data.get("target", "")),
            status=CanonicalStatus(data.get("status", CanonicalStatus.UNKNOWN)),
            raw_action=str(data.get("action", "")),
            raw=str(data.get("raw", "")),
        )


class DoorCommandResult(BaseModel):
    """Outcome of a lock/unlock request.

    Failures are reported here instead of raised so UI callers always get
    a single shape back.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    action: str
    module_id: str
    correlation_id: int | None = None
    error: str | None = None


class DoorInfo(BaseModel):
    """Answer to the legacy door-info query."""

    model_config = ConfigDict(frozen=True)

    module_id: str
    target: str
    status: str = Field(description="Raw action text as the module sent it")
    front_door_open: bool = False
    front_lock_locked: bool = False
    success: bool = True
