from __future__ import annotations

import asyncio

import pytest

from doorhub._correlation import CorrelationTable
from doorhub.state.events import EventName, ObserverEvent


def _feedback(correlation_id: int) -> ObserverEvent:
    return ObserverEvent(
        name=EventName.COMMAND_FEEDBACK,
        data={"module": "D2", "correlation_id": correlation_id, "target": "D0", "status": "LOCKED"},
    )


class _ExplodingSink:
    def deliver(self, event: ObserverEvent) -> None:
        raise RuntimeError("socket gone")


@pytest.mark.asyncio
async def test_reply_then_timeout_resolves_once(make_sink) -> None:
    table = CorrelationTable()
    sink = make_sink()

    assert table.register(7, sink, 5000, module_id="D2", target="D0", action="LOCK")
    assert table.resolve(7, _feedback(7))
    assert not table.expire(7)

    assert [event.name for event in sink.events] == [EventName.COMMAND_FEEDBACK]
    assert 7 not in table


@pytest.mark.asyncio
async def test_timeout_then_late_reply_resolves_once(make_sink) -> None:
    table = CorrelationTable()
    sink = make_sink()

    table.register(7, sink, 5000, module_id="D2", target="D0", action="LOCK")
    assert table.expire(7)
    assert not table.resolve(7, _feedback(7))

    assert len(sink.events) == 1
    error = sink.events[0]
    assert error.name == EventName.COMMAND_ERROR
    assert error.data["correlation_id"] == 7
    assert error.data["module"] == "D2"
    assert error.data["kind"] == "timeout"


@pytest.mark.asyncio
async def test_deadline_fires_on_the_loop(make_sink) -> None:
    table = CorrelationTable()
    sink = make_sink()

    table.register(3, sink, 10, module_id="D1")
    await asyncio.sleep(0.05)

    assert len(table) == 0
    assert sink.named(EventName.COMMAND_ERROR)[0].data["error"] == "no reply within window"


@pytest.mark.asyncio
async def test_resolve_cancels_deadline(make_sink) -> None:
    table = CorrelationTable()
    sink = make_sink()

    table.register(4, sink, 10, module_id="D1")
    entry = table.get(4)
    assert entry is not None
    table.resolve(4, _feedback(4))
    await asyncio.sleep(0.05)

    assert entry.timer is not None and entry.timer.cancelled()
    assert [event.name for event in sink.events] == [EventName.COMMAND_FEEDBACK]


@pytest.mark.asyncio
async def test_duplicate_id_is_refused(make_sink) -> None:
    table = CorrelationTable()
    first = make_sink()
    second = make_sink()

    assert table.register(1, first, 5000, module_id="D1")
    assert not table.register(1, second, 5000, module_id="D1")

    table.resolve(1, _feedback(1))
    assert len(first.events) == 1
    assert second.events == []


@pytest.mark.asyncio
async def test_cancel_all_fails_every_pending_command(make_sink) -> None:
    table = CorrelationTable()
    sinks = [make_sink() for _ in range(3)]
    for correlation_id, sink in enumerate(sinks, start=1):
        table.register(correlation_id, sink, 5000, module_id="D1")

    assert table.cancel_all("session closed") == 3

    assert len(table) == 0
    for sink in sinks:
        (event,) = sink.events
        assert event.data["kind"] == "closed"
        assert event.data["error"] == "session closed"


@pytest.mark.asyncio
async def test_failing_requester_does_not_break_resolution() -> None:
    table = CorrelationTable()
    table.register(9, _ExplodingSink(), 5000, module_id="D1")

    assert table.resolve(9, _feedback(9))
    assert table.pending_ids() == []
