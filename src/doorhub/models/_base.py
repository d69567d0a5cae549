"""Base model and enum for hub wire data.

Every doorhub model inherits from :class:`DoorHubBaseModel`, which is
frozen and carries the datagram text it was built from in ``raw``.

State enums inherit from :class:`DoorHubEnum`, which requires an
``UNKNOWN`` member and adds a ``_missing_`` hook that returns ``UNKNOWN``
for any token without a mapped member. Module firmware revisions emit
tokens we have never seen; they must never raise.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class DoorHubEnum(enum.StrEnum):
    """Base for textual wire enums.

    Every subclass **must** define ``UNKNOWN``.
    Lookups are case-insensitive and whitespace tolerant.
    """

    @classmethod
    def _missing_(cls, value: object) -> DoorHubEnum:
        if isinstance(value, str):
            candidate = value.strip().upper()
            for member in cls:
                if member.value == candidate:
                    return member
        unknown: DoorHubEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class DoorHubBaseModel(BaseModel):
    """Base for immutable hub models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    raw: str = Field(default="")
    """Original datagram text (stripped)."""
