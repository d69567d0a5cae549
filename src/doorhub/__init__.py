"""doorhub - Async bridge between a UDP door-lock hub and its observers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("doorhub")
except PackageNotFoundError:
    __version__ = "0+local"
from doorhub.broadcast import FutureSink, NotificationSink, ObserverBroadcaster
from doorhub.client import DoorHubClient
from doorhub.config import HubConfig
from doorhub.exceptions import (
    DoorHubCommandError,
    DoorHubConfigError,
    DoorHubDecodeError,
    DoorHubError,
    DoorHubSessionError,
    DoorHubTimeoutError,
    DoorHubTransportError,
)
from doorhub.ingestion import normalize, normalize_status
from doorhub.models import (
    CanonicalStatus,
    CommandFeedback,
    Door,
    DoorCommandResult,
    DoorInfo,
    EventMessage,
    FeedbackMessage,
    HeartbeatMessage,
    HelloMessage,
    NormalizedStatus,
    RawMessage,
    StatusFormat,
)
from doorhub.session import HubSession
from doorhub.state.events import EventName, ObserverEvent
from doorhub.state.store import DoorStore

__all__ = [
    "__version__",
    "CanonicalStatus",
    "CommandFeedback",
    "Door",
    "DoorCommandResult",
    "DoorHubClient",
    "DoorHubCommandError",
    "DoorHubConfigError",
    "DoorHubDecodeError",
    "DoorHubError",
    "DoorHubSessionError",
    "DoorHubTimeoutError",
    "DoorHubTransportError",
    "DoorInfo",
    "DoorStore",
    "EventMessage",
    "EventName",
    "FeedbackMessage",
    "FutureSink",
    "HeartbeatMessage",
    "HelloMessage",
    "HubConfig",
    "HubSession",
    "NormalizedStatus",
    "NotificationSink",
    "ObserverBroadcaster",
    "ObserverEvent",
    "RawMessage",
    "StatusFormat",
    "normalize",
    "normalize_status",
]
