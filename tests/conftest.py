from __future__ import annotations

from typing import Any

import pytest

from doorhub.state.events import EventName, ObserverEvent


class FakeTransport:
    """In-memory stand-in for the UDP endpoint."""

    def __init__(self) -> None:
        self.sent: list[tuple[bytes, Any]] = []
        self.closed = False
        self.error: OSError | None = None

    def sendto(self, data: bytes, addr: Any = None) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((data, addr))

    def close(self) -> None:
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    @property
    def lines(self) -> list[str]:
        return [data.decode().strip() for data, _addr in self.sent]


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[ObserverEvent] = []

    def deliver(self, event: ObserverEvent) -> None:
        self.events.append(event)

    def named(self, name: EventName) -> list[ObserverEvent]:
        return [event for event in self.events if event.name == name]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_sink() -> type[RecordingSink]:
    return RecordingSink
