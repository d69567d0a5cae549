"""In-memory door state store.

This is the only component allowed to mutate :class:`Door` records.
Writers hand it normalized statuses; readers get copies.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from doorhub.ingestion.normalize import apply_normalized
from doorhub.models._base import utcnow
from doorhub.models.door import Door
from doorhub.models.status import NormalizedStatus


class DoorStore:
    """Per-module door records, created lazily on first sight."""

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._doors: dict[str, Door] = {}

    def _door(self, module_id: str) -> Door:
        door = self._doors.get(module_id)
        if door is None:
            door = Door(module_id=module_id)
            self._doors[module_id] = door
        return door

    def touch(self, module_id: str) -> None:
        """Record that a datagram from *module_id* arrived."""
        self._door(module_id).last_seen = self._clock()

    def apply(self, module_id: str, normalized: NormalizedStatus) -> bool:
        """Apply a normalized status.

        Returns ``False`` (and leaves the record alone) when the input format
        carried no door information, e.g. a bare ``STATUS`` echo or a
        command acknowledgement.
        """
        if not normalized.format.carries_door_state:
            return False
        door = self._door(module_id)
        apply_normalized(door, normalized)
        door.raw = normalized.raw
        door.updated_at = self._clock()
        return True

    def get(self, module_id: str) -> Door:
        """Copy of the record; unknown modules yield an all-unknown door."""
        door = self._doors.get(module_id)
        if door is None:
            return Door(module_id=module_id)
        return door.model_copy()

    def lock_locked(self, module_id: str) -> bool | None:
        door = self._doors.get(module_id)
        return door.lock_locked if door is not None else None

    def snapshot(self) -> dict[str, Door]:
        return {module_id: door.model_copy() for module_id, door in sorted(self._doors.items())}

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._doors

    def __len__(self) -> int:
        return len(self._doors)
