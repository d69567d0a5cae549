from __future__ import annotations

import pytest

from doorhub.config import HubConfig
from doorhub.exceptions import DoorHubConfigError

_ENV_KEYS = (
    "HUB_HOST",
    "HUB_PORT",
    "DOORHUB_HUB_HOST",
    "DOORHUB_HUB_PORT",
    "DOORHUB_BIND_HOST",
    "DOORHUB_BIND_PORT",
    "DOORHUB_COMMAND_TIMEOUT_MS",
    "DOORHUB_POLL_INTERVAL",
    "DOORHUB_POLL_ATTEMPTS",
    "DOORHUB_CONVERGENCE_POLLING",
    "DOORHUB_LEGACY_FEEDBACK",
    "DOORHUB_WEB_HOST",
    "DOORHUB_WEB_PORT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = HubConfig.from_env()

    assert config.hub_address == ("192.168.8.108", 12345)
    assert config.bind_port == 0
    assert config.command_timeout_ms == 5000
    assert config.poll_interval == 0.5
    assert config.poll_attempts == 20
    assert config.convergence_polling is True
    assert config.legacy_feedback_broadcast is True
    assert config.web_port == 8080


def test_legacy_env_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HUB_HOST", "10.0.0.2")
    monkeypatch.setenv("HUB_PORT", "5000")

    config = HubConfig.from_env()

    assert config.hub_address == ("10.0.0.2", 5000)


def test_prefixed_env_names_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HUB_HOST", "10.0.0.2")
    monkeypatch.setenv("DOORHUB_HUB_HOST", "10.0.0.3")
    monkeypatch.setenv("HUB_PORT", "5000")
    monkeypatch.setenv("DOORHUB_HUB_PORT", "6000")

    config = HubConfig.from_env()

    assert config.hub_address == ("10.0.0.3", 6000)


def test_numbers_and_toggles_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOORHUB_COMMAND_TIMEOUT_MS", "250")
    monkeypatch.setenv("DOORHUB_POLL_INTERVAL", "0.1")
    monkeypatch.setenv("DOORHUB_POLL_ATTEMPTS", "5")
    monkeypatch.setenv("DOORHUB_CONVERGENCE_POLLING", "off")
    monkeypatch.setenv("DOORHUB_LEGACY_FEEDBACK", "0")

    config = HubConfig.from_env()

    assert config.command_timeout_ms == 250
    assert config.poll_interval == 0.1
    assert config.poll_attempts == 5
    assert config.convergence_polling is False
    assert config.legacy_feedback_broadcast is False


def test_overrides_beat_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOORHUB_POLL_ATTEMPTS", "5")
    monkeypatch.setenv("DOORHUB_CONVERGENCE_POLLING", "yes")

    config = HubConfig.from_env(poll_attempts=3, convergence_polling=False)

    assert config.poll_attempts == 3
    assert config.convergence_polling is False


def test_non_numeric_env_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOORHUB_COMMAND_TIMEOUT_MS", "soon")

    with pytest.raises(DoorHubConfigError, match="DOORHUB_COMMAND_TIMEOUT_MS"):
        HubConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"hub_port": 0},
        {"bind_port": 70000},
        {"command_timeout_ms": 0},
        {"poll_attempts": 0},
        {"poll_interval": -1},
    ],
)
def test_invalid_values_raise(kwargs: dict[str, object]) -> None:
    with pytest.raises(DoorHubConfigError):
        HubConfig(**kwargs)  # type: ignore[arg-type]
