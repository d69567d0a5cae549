"""Ingestion layer.

Turns raw action and event text emitted by door modules into canonical
statuses before anything else sees them.
"""

from doorhub.ingestion.normalize import (
    apply_canonical_status,
    apply_normalized,
    normalize,
    normalize_event,
    normalize_status,
    scan_door_tokens,
)

__all__ = [
    "apply_canonical_status",
    "apply_normalized",
    "normalize",
    "normalize_event",
    "normalize_status",
    "scan_door_tokens",
]
