"""Data models for hub messages and door state."""

from doorhub.models._base import DoorHubBaseModel, DoorHubEnum
from doorhub.models.command import CommandFeedback, DoorCommandResult, DoorInfo
from doorhub.models.door import Door
from doorhub.models.messages import (
    EventMessage,
    FeedbackMessage,
    HeartbeatMessage,
    HelloMessage,
    InboundMessage,
    MessageType,
    RawMessage,
)
from doorhub.models.status import CanonicalStatus, NormalizedStatus, StatusFormat

__all__ = [
    "CanonicalStatus",
    "CommandFeedback",
    "Door",
    "DoorCommandResult",
    "DoorHubBaseModel",
    "DoorHubEnum",
    "DoorInfo",
    "EventMessage",
    "FeedbackMessage",
    "HeartbeatMessage",
    "HelloMessage",
    "InboundMessage",
    "MessageType",
    "NormalizedStatus",
    "RawMessage",
    "StatusFormat",
]
