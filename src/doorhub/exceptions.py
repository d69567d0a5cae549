"""Custom exception hierarchy for doorhub."""

from __future__ import annotations


class DoorHubError(Exception):
    """Base exception for all doorhub errors."""


class DoorHubConfigError(DoorHubError):
    """Invalid or missing configuration."""


class DoorHubSessionError(DoorHubError):
    """Session used before ``start()`` or after ``stop()``."""


class DoorHubCommandError(DoorHubError):
    """A correlated command did not complete."""

    def __init__(
        self,
        message: str,
        *,
        module_id: str = "",
        correlation_id: int | None = None,
    ) -> None:
        self.module_id = module_id
        self.correlation_id = correlation_id
        super().__init__(message)


class DoorHubTransportError(DoorHubCommandError):
    """Datagram send failed at the OS/network layer.

    Reported to the requester immediately; the bridge never retries.
    """


class DoorHubTimeoutError(DoorHubCommandError):
    """No FEEDBACK arrived within the reply window."""


class DoorHubDecodeError(DoorHubError):
    """Malformed inbound datagram.

    Raised only inside the codec; the session demotes the datagram to a
    RAW passthrough instead of letting this escape.
    """

    def __init__(self, message: str, *, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)
