"""Canonical door status vocabulary."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict

from doorhub._constants import STATUS_PREFIX
from doorhub.models._base import DoorHubEnum


class CanonicalStatus(DoorHubEnum):
    """Normalized door status.

    This is the only status vocabulary consumed past the normalizer.
    ``CLOSED`` has no member: a closed door says nothing about
    the lock, which is what the UI toggles on.
    """

    UNKNOWN = "UNKNOWN"
    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"
    OPEN = "OPEN"

    @property
    def wire(self) -> str:
        """``STATUS_<STATE>`` form, as modules with current firmware emit it."""
        return f"{STATUS_PREFIX}{self.value}"


class StatusFormat(enum.StrEnum):
    """Which historical encoding a raw action was recognized as."""

    PREFIXED = "prefixed"  # STATUS_LOCKED
    BARE_QUERY = "bare_query"  # STATUS echoed back unresolved
    LEGACY = "legacy"  # CLOSED,UNLOCKED / OPEN,LOCKED
    DOOR_CLOSED = "door_closed"  # CLOSED with no lock token; says nothing about the lock
    UNRECOGNIZED = "unrecognized"

    @property
    def carries_door_state(self) -> bool:
        return self in (StatusFormat.PREFIXED, StatusFormat.LEGACY, StatusFormat.DOOR_CLOSED)


class NormalizedStatus(BaseModel):
    """Outcome of normalizing one raw action or event text."""

    model_config = ConfigDict(frozen=True)

    status: CanonicalStatus
    format: StatusFormat
    raw: str = ""
