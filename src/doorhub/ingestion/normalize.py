"""Status normalization.

Module firmware revisions report door state in three encodings:

- ``STATUS_LOCKED`` / ``STATUS_UNLOCKED`` / ``STATUS_OPEN`` (current)
- a bare ``STATUS`` echo, which means the module did not resolve a state
- legacy comma lists such as ``CLOSED,UNLOCKED`` or ``OPEN,LOCKED``

Everything here is pure and total: unrecognized input resolves to
``UNKNOWN`` rather than raising, so downstream code always has a status.
"""

from __future__ import annotations

import re

from doorhub._constants import STATUS_PREFIX
from doorhub.models.door import Door
from doorhub.models.status import CanonicalStatus, NormalizedStatus, StatusFormat

_TOKEN_SPLIT = re.compile(r"[,\s]+")

_DOOR_TOKENS = frozenset({"OPEN", "CLOSED"})
_LOCK_TOKENS = frozenset({"LOCKED", "UNLOCKED"})
_PREFIXED_STATES = frozenset({CanonicalStatus.LOCKED, CanonicalStatus.UNLOCKED, CanonicalStatus.OPEN})


def scan_door_tokens(text: str) -> tuple[str | None, str | None]:
    """Return ``(door_token, lock_token)`` found in free text.

    The last occurrence of each kind wins.
    """
    door_token: str | None = None
    lock_token: str | None = None
    for token in _TOKEN_SPLIT.split(text.strip().upper()):
        if token in _DOOR_TOKENS:
            door_token = token
        elif token in _LOCK_TOKENS:
            lock_token = token
    return door_token, lock_token


def _status_from_tokens(text: str) -> CanonicalStatus:
    door_token, lock_token = scan_door_tokens(text)
    # Lock state is the actionable signal for the UI toggle.
    if lock_token is not None:
        return CanonicalStatus(lock_token)
    if door_token is not None:
        return CanonicalStatus(door_token)
    return CanonicalStatus.UNKNOWN


def _normalize_tokens(text: str, raw: str) -> NormalizedStatus:
    door_token, lock_token = scan_door_tokens(text)
    if lock_token is None and door_token == "CLOSED":
        return NormalizedStatus(status=CanonicalStatus.UNKNOWN, format=StatusFormat.DOOR_CLOSED, raw=raw)
    return NormalizedStatus(status=_status_from_tokens(text), format=StatusFormat.LEGACY, raw=raw)


def normalize_status(raw_action: str) -> NormalizedStatus:
    """Classify a FEEDBACK action and map it to a canonical status."""
    raw = raw_action or ""
    upper = raw.strip().upper()

    if upper.startswith(STATUS_PREFIX):
        suffix = upper[len(STATUS_PREFIX) :]
        if suffix == "CLOSED":
            return NormalizedStatus(status=CanonicalStatus.UNKNOWN, format=StatusFormat.DOOR_CLOSED, raw=raw)
        status = CanonicalStatus(suffix)
        if status not in _PREFIXED_STATES:
            status = CanonicalStatus.UNKNOWN
        return NormalizedStatus(status=status, format=StatusFormat.PREFIXED, raw=raw)

    if upper == "STATUS":
        return NormalizedStatus(status=CanonicalStatus.UNKNOWN, format=StatusFormat.BARE_QUERY, raw=raw)

    if "OPEN" in upper or "CLOSED" in upper:
        return _normalize_tokens(upper, raw)

    return NormalizedStatus(status=CanonicalStatus.UNKNOWN, format=StatusFormat.UNRECOGNIZED, raw=raw)


def normalize(raw_action: str) -> CanonicalStatus:
    """Map any raw action to a :class:`CanonicalStatus`."""
    return normalize_status(raw_action).status


def normalize_event(raw_event: str) -> NormalizedStatus:
    """Normalize EVENT text (``DOOR OPEN``, ``LOCK LOCKED``).

    Events are always free text, so only the token scan applies.
    """
    raw = raw_event or ""
    door_token, lock_token = scan_door_tokens(raw)
    if door_token is None and lock_token is None:
        return NormalizedStatus(status=CanonicalStatus.UNKNOWN, format=StatusFormat.UNRECOGNIZED, raw=raw)
    return _normalize_tokens(raw, raw)


def apply_canonical_status(door: Door, status: CanonicalStatus) -> None:
    """Apply a canonical status to a door record in place."""
    if status == CanonicalStatus.LOCKED:
        # A locked door is closed by definition.
        door.lock_locked = True
        door.door_open = False
    elif status == CanonicalStatus.UNLOCKED:
        door.lock_locked = False
        door.door_open = False
    elif status == CanonicalStatus.OPEN:
        # Lock state is not determinable from an open signal.
        door.door_open = True
    else:
        door.door_open = None
        door.lock_locked = None
    door.status = status


def apply_normalized(door: Door, normalized: NormalizedStatus) -> None:
    """Apply a normalized FEEDBACK or EVENT to a door record in place.

    A lone ``CLOSED`` only closes the door; the lock fields and the
    canonical status keep their previous values.
    """
    if normalized.format == StatusFormat.DOOR_CLOSED:
        door.door_open = False
        return
    apply_canonical_status(door, normalized.status)
