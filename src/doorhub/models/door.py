"""Observed state of one door module."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from doorhub.models.status import CanonicalStatus


class Door(BaseModel):
    """One physical lock module as observed by the bridge.

    ``door_open`` and ``lock_locked`` are tri-state: ``None`` means unknown.
    Both start unknown and only change when a normalized status or event is
    applied through :class:`doorhub.state.store.DoorStore`.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    module_id: str
    door_open: bool | None = None
    lock_locked: bool | None = None
    status: CanonicalStatus = CanonicalStatus.UNKNOWN
    raw: str | None = None
    updated_at: datetime | None = None
    last_seen: datetime | None = None

    @property
    def is_known(self) -> bool:
        return self.door_open is not None or self.lock_locked is not None

    def as_payload(self) -> dict[str, object]:
        """JSON-friendly view for observers and the health endpoint."""
        return {
            "module": self.module_id,
            "door_open": self.door_open,
            "lock_locked": self.lock_locked,
            "status": self.status.value,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }
