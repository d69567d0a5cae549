from __future__ import annotations

import asyncio

import pytest

from doorhub.broadcast import FutureSink, NotificationSink, ObserverBroadcaster
from doorhub.exceptions import DoorHubSessionError, DoorHubTimeoutError, DoorHubTransportError
from doorhub.models.status import CanonicalStatus
from doorhub.state.events import ErrorKind, EventName, ObserverEvent, command_error


class _ExplodingSink:
    def deliver(self, event: ObserverEvent) -> None:
        raise ConnectionResetError("gone")


def _event() -> ObserverEvent:
    return ObserverEvent(name=EventName.HUB_HEARTBEAT, data={"module": "D1"})


def test_publish_reaches_every_observer(make_sink) -> None:
    broadcaster = ObserverBroadcaster()
    first, second = make_sink(), make_sink()
    broadcaster.add(first)
    broadcaster.add(second)

    assert broadcaster.publish(_event()) == 2
    assert len(first.events) == len(second.events) == 1


def test_failing_observer_is_skipped(make_sink) -> None:
    broadcaster = ObserverBroadcaster()
    healthy = make_sink()
    broken = _ExplodingSink()
    broadcaster.add(broken)
    broadcaster.add(healthy)

    assert broadcaster.publish(_event()) == 1
    assert len(healthy.events) == 1
    assert broken in broadcaster
    assert len(broadcaster) == 2


def test_remove_stops_delivery(make_sink) -> None:
    broadcaster = ObserverBroadcaster()
    sink = make_sink()
    broadcaster.add(sink)
    broadcaster.remove(sink)
    broadcaster.remove(sink)

    assert broadcaster.publish(_event()) == 0
    assert sink.events == []


def test_sinks_satisfy_protocol(make_sink) -> None:
    assert isinstance(make_sink(), NotificationSink)


@pytest.mark.asyncio
async def test_future_sink_result_from_feedback() -> None:
    future = asyncio.get_running_loop().create_future()
    sink = FutureSink(future)

    sink.deliver(
        ObserverEvent(
            name=EventName.COMMAND_FEEDBACK,
            data={"module": "D2", "correlation_id": 7, "target": "D0", "status": "LOCKED", "action": "STATUS_LOCKED"},
        )
    )
    sink.deliver(command_error("D2", 7, "late"))

    feedback = await future
    assert feedback.status == CanonicalStatus.LOCKED
    assert feedback.correlation_id == 7


@pytest.mark.asyncio
async def test_future_sink_ignores_broadcasts() -> None:
    future = asyncio.get_running_loop().create_future()
    FutureSink(future).deliver(_event())

    assert not future.done()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        (ErrorKind.TIMEOUT, DoorHubTimeoutError),
        (ErrorKind.TRANSPORT, DoorHubTransportError),
        (ErrorKind.CLOSED, DoorHubSessionError),
    ],
)
async def test_future_sink_maps_error_kinds(kind: ErrorKind, expected: type[Exception]) -> None:
    future = asyncio.get_running_loop().create_future()
    FutureSink(future).deliver(command_error("D2", 7, "boom", kind=kind))

    with pytest.raises(expected):
        await future
