"""Bridge configuration for doorhub."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from doorhub._constants import (
    DEFAULT_COMMAND_TIMEOUT_MS,
    DEFAULT_HUB_HOST,
    DEFAULT_HUB_PORT,
    DEFAULT_POLL_ATTEMPTS,
    DEFAULT_POLL_INTERVAL,
)
from doorhub.exceptions import DoorHubConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: Callable[[str], Any]) -> Any:
    try:
        return cast(value)
    except ValueError as exc:
        raise DoorHubConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class HubConfig:
    """Bridge configuration.

    Parameters
    ----------
    hub_host : str
        Address of the hub that aggregates the door modules.
    hub_port : int
        UDP port the hub listens on for COMMAND datagrams.
    bind_host : str
        Local address for the session's datagram endpoint.
    bind_port : int
        Local port; ``0`` binds an ephemeral port, which the hub replies to.
    command_timeout_ms : int
        Reply window applied to every correlated command.
    poll_interval : float
        Seconds between STATUS queries while converging after LOCK/UNLOCK.
    poll_attempts : int
        Maximum STATUS queries before convergence polling gives up.
    convergence_polling : bool
        Start a convergence poller when a LOCK/UNLOCK acknowledgement arrives.
    legacy_feedback_broadcast : bool
        Also broadcast the raw ``command-feedback`` event to every observer,
        for UI clients that predate ``door-feedback``.
    web_host : str
        Bind address of the WebSocket observer server.
    web_port : int
        Port of the WebSocket observer server.
    """

    hub_host: str = DEFAULT_HUB_HOST
    hub_port: int = DEFAULT_HUB_PORT
    bind_host: str = "0.0.0.0"
    bind_port: int = 0
    command_timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_attempts: int = DEFAULT_POLL_ATTEMPTS
    convergence_polling: bool = True
    legacy_feedback_broadcast: bool = True
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    def __post_init__(self) -> None:
        if not 0 < self.hub_port < 65536:
            raise DoorHubConfigError(f"hub_port out of range: {self.hub_port}")
        if not 0 <= self.bind_port < 65536:
            raise DoorHubConfigError(f"bind_port out of range: {self.bind_port}")
        if self.command_timeout_ms <= 0:
            raise DoorHubConfigError("command_timeout_ms must be positive")
        if self.poll_attempts < 1:
            raise DoorHubConfigError("poll_attempts must be at least 1")
        if self.poll_interval < 0:
            raise DoorHubConfigError("poll_interval must not be negative")

    @property
    def hub_address(self) -> tuple[str, int]:
        return (self.hub_host, self.hub_port)

    @classmethod
    def from_env(cls, **overrides: Any) -> HubConfig:
        """Create configuration from environment variables.

        Reads ``HUB_HOST`` / ``HUB_PORT`` (the names the web UI deployment
        already exports) and the ``DOORHUB_*`` variables. The ``DOORHUB_``
        spelling wins when both are set. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        HubConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "HUB_HOST": "hub_host",
            "DOORHUB_HUB_HOST": "hub_host",
            "DOORHUB_BIND_HOST": "bind_host",
            "DOORHUB_WEB_HOST": "web_host",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()

        _ENV_NUMBER_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "HUB_PORT": ("hub_port", int),
            "DOORHUB_HUB_PORT": ("hub_port", int),
            "DOORHUB_BIND_PORT": ("bind_port", int),
            "DOORHUB_COMMAND_TIMEOUT_MS": ("command_timeout_ms", int),
            "DOORHUB_POLL_INTERVAL": ("poll_interval", float),
            "DOORHUB_POLL_ATTEMPTS": ("poll_attempts", int),
            "DOORHUB_WEB_PORT": ("web_port", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        if "convergence_polling" not in overrides:
            config_kwargs["convergence_polling"] = _env_bool(env.get("DOORHUB_CONVERGENCE_POLLING"), True)
        if "legacy_feedback_broadcast" not in overrides:
            config_kwargs["legacy_feedback_broadcast"] = _env_bool(env.get("DOORHUB_LEGACY_FEEDBACK"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
