from __future__ import annotations

import asyncio

import pytest

from doorhub._client.commands import coerce_module_id
from doorhub.client import DoorHubClient
from doorhub.config import HubConfig
from doorhub.exceptions import DoorHubSessionError, DoorHubTimeoutError, DoorHubTransportError
from doorhub.models.status import CanonicalStatus
from doorhub.state.events import EventName


async def _until_sent(transport, count: int = 1) -> None:
    for _ in range(100):
        if len(transport.sent) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} datagram(s), saw {transport.lines}")


def _client(transport, **config) -> DoorHubClient:
    config.setdefault("convergence_polling", False)
    return DoorHubClient(HubConfig(**config), transport=transport)


@pytest.mark.asyncio
async def test_client_must_be_started(transport) -> None:
    client = _client(transport)

    with pytest.raises(DoorHubSessionError):
        await client.send_command("D1")


@pytest.mark.asyncio
async def test_send_command_returns_feedback(transport) -> None:
    async with _client(transport) as client:
        task = asyncio.create_task(client.send_command("D2", "D0", "STATUS"))
        await _until_sent(transport)
        client.session.handle_datagram(b"D2 FEEDBACK 1 D0 STATUS_LOCKED\n")

        feedback = await task

    assert feedback.module_id == "D2"
    assert feedback.status == CanonicalStatus.LOCKED
    assert feedback.raw_action == "STATUS_LOCKED"
    assert client.get_door("D2").lock_locked is True


@pytest.mark.asyncio
async def test_send_command_timeout(transport) -> None:
    async with _client(transport, command_timeout_ms=20) as client:
        with pytest.raises(DoorHubTimeoutError) as excinfo:
            await client.send_command("D2", "D0", "LOCK")

        assert excinfo.value.module_id == "D2"
        assert excinfo.value.correlation_id == 1
        assert client.pending_count == 0


@pytest.mark.asyncio
async def test_send_command_transport_error(transport) -> None:
    transport.error = OSError("network unreachable")
    async with _client(transport) as client:
        with pytest.raises(DoorHubTransportError):
            await client.send_command("D1")


@pytest.mark.asyncio
async def test_request_status_without_waiting(transport) -> None:
    async with _client(transport) as client:
        assert await client.request_status("D3", wait=False) is None

        assert transport.lines == ["D3 COMMAND 1 D0 STATUS"]
        assert client.pending_count == 0


@pytest.mark.asyncio
async def test_close_fails_pending_commands(transport) -> None:
    client = _client(transport)
    await client.start()
    task = asyncio.create_task(client.send_command("D1"))
    await _until_sent(transport)

    await client.close()

    with pytest.raises(DoorHubSessionError):
        await task
    assert transport.closed


@pytest.mark.asyncio
async def test_observers_receive_broadcasts(transport, make_sink) -> None:
    async with _client(transport) as client:
        observer = make_sink()
        client.add_observer(observer)
        client.session.handle_datagram(b"D1 HEARTBEAT\n")
        client.remove_observer(observer)
        client.session.handle_datagram(b"D1 HEARTBEAT\n")

    assert [event.name for event in observer.events] == [EventName.HUB_HEARTBEAT]
    assert list(client.doors()) == ["D1"]


def test_coerce_module_id() -> None:
    assert coerce_module_id(5) == "D5"
    assert coerce_module_id("5") == "D5"
    assert coerce_module_id("D5") == "D5"


@pytest.mark.asyncio
async def test_lock_reports_success(transport) -> None:
    async with _client(transport) as client:
        task = asyncio.create_task(client.lock(2))
        await _until_sent(transport)
        assert transport.lines == ["D2 COMMAND 1 D0 LOCK"]
        client.session.handle_datagram(b"D2 FEEDBACK 1 D0 LOCK\n")

        result = await task

    assert result.success
    assert result.action == "LOCK"
    assert result.module_id == "D2"
    assert result.correlation_id == 1


@pytest.mark.asyncio
async def test_unlock_failure_is_reported_not_raised(transport) -> None:
    async with _client(transport, command_timeout_ms=20) as client:
        result = await client.unlock("D4")

    assert not result.success
    assert result.action == "UNLOCK"
    assert result.error == "no reply within window"
    assert result.correlation_id == 1


@pytest.mark.asyncio
async def test_get_door_info_parses_legacy_status(transport) -> None:
    async with _client(transport) as client:
        task = asyncio.create_task(client.get_door_info(5))
        await _until_sent(transport)
        assert transport.lines == ["D5 COMMAND 1 D0 STATUS"]
        client.session.handle_datagram(b"D5 FEEDBACK 1 D0 CLOSED,LOCKED\n")

        info = await task

    assert info is not None
    assert info.module_id == "D5"
    assert info.status == "CLOSED,LOCKED"
    assert info.front_door_open is False
    assert info.front_lock_locked is True
    assert info.success


@pytest.mark.asyncio
async def test_get_door_info_prefixed_open(transport) -> None:
    async with _client(transport) as client:
        task = asyncio.create_task(client.get_door_info("D1"))
        await _until_sent(transport)
        client.session.handle_datagram(b"D1 FEEDBACK 1 D0 STATUS_OPEN\n")

        info = await task

    assert info is not None
    assert info.front_door_open is True
    assert info.front_lock_locked is False


@pytest.mark.asyncio
async def test_get_door_info_timeout_returns_none(transport) -> None:
    async with _client(transport, command_timeout_ms=20) as client:
        assert await client.get_door_info("D1") is None


@pytest.mark.asyncio
async def test_lock_ack_starts_poller_that_exhausts(transport, make_sink) -> None:
    async with _client(transport, convergence_polling=True, poll_interval=0, poll_attempts=20) as client:
        observer = make_sink()
        client.add_observer(observer)
        client.session.handle_datagram(b"D2 FEEDBACK 1 D0 LOCK\n")

        tasks = client.poller_tasks()
        assert len(tasks) == 1
        await asyncio.gather(*tasks)

    assert transport.lines == ["D2 COMMAND %d D0 STATUS" % n for n in range(1, 21)]
    (converged,) = observer.named(EventName.DOOR_CONVERGED)
    assert converged.data == {"module": "D2", "expected": "LOCKED", "state": "EXHAUSTED", "attempts": 20}


@pytest.mark.asyncio
async def test_poller_converges_on_matching_status(transport, make_sink) -> None:
    async with _client(transport, convergence_polling=True, poll_interval=0) as client:
        observer = make_sink()
        client.add_observer(observer)
        client.session.handle_datagram(b"D1 FEEDBACK 1 D0 UNLOCK\n")
        client.session.handle_datagram(b"D1 FEEDBACK 2 D0 STATUS_UNLOCKED\n")

        await asyncio.gather(*client.poller_tasks())

    (converged,) = observer.named(EventName.DOOR_CONVERGED)
    assert converged.data["state"] == "CONVERGED"
    assert converged.data["attempts"] == 1


@pytest.mark.asyncio
async def test_second_ack_while_polling_is_ignored(transport) -> None:
    async with _client(transport, convergence_polling=True, poll_interval=0.01, poll_attempts=3) as client:
        client.session.handle_datagram(b"D2 FEEDBACK 1 D0 LOCK\n")
        client.session.handle_datagram(b"D2 FEEDBACK 2 D0 LOCK\n")
        client.session.handle_datagram(b"D3 FEEDBACK 3 D0 LOCK\n")

        assert len(client.poller_tasks()) == 2


@pytest.mark.asyncio
async def test_polling_can_be_disabled(transport) -> None:
    async with _client(transport, convergence_polling=False) as client:
        client.session.handle_datagram(b"D2 FEEDBACK 1 D0 LOCK\n")

        assert client.poller_tasks() == []


@pytest.mark.asyncio
async def test_close_cancels_pollers(transport) -> None:
    client = _client(transport, convergence_polling=True, poll_interval=10)
    await client.start()
    client.session.handle_datagram(b"D2 FEEDBACK 1 D0 LOCK\n")
    (task,) = client.poller_tasks()

    await client.close()

    assert task.cancelled()
    assert client.poller_tasks() == []
