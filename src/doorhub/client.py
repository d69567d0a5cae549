"""High-level async client for the door hub."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any

from doorhub._client import commands as _commands
from doorhub._client.poller import ConvergencePoller, PollState, expected_for_ack
from doorhub._constants import DEFAULT_ACTION, DEFAULT_TARGET
from doorhub._transport import HubTransport
from doorhub.broadcast import FutureSink, NotificationSink, ObserverBroadcaster
from doorhub.config import HubConfig
from doorhub.exceptions import DoorHubSessionError
from doorhub.models.command import CommandFeedback, DoorCommandResult, DoorInfo
from doorhub.models.door import Door
from doorhub.models.messages import FeedbackMessage
from doorhub.models.status import CanonicalStatus, NormalizedStatus
from doorhub.session import HubSession
from doorhub.state.events import EventName, ObserverEvent
from doorhub.state.store import DoorStore

_logger = logging.getLogger(__name__)

_PollerKey = tuple[str, CanonicalStatus]


class DoorHubClient:
    """Async client for a door hub.

    Usage::

        async with DoorHubClient(HubConfig.from_env()) as client:
            feedback = await client.request_status("D2")
            print(client.get_door("D2"))
    """

    def __init__(
        self,
        config: HubConfig | None = None,
        *,
        transport: HubTransport | None = None,
    ) -> None:
        self._config = config or HubConfig()
        self.store = DoorStore()
        self.broadcaster = ObserverBroadcaster()
        self._session = HubSession(
            self._config,
            broadcaster=self.broadcaster,
            store=self.store,
            transport=transport,
        )
        self._session.add_feedback_listener(self._on_feedback)
        self._pollers: dict[_PollerKey, asyncio.Task[PollState]] = {}
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> DoorHubClient:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self) -> None:
        await self._session.start()
        self._started = True

    async def close(self) -> None:
        """Stop pollers, then fail pending commands and close the endpoint."""
        tasks = list(self._pollers.values())
        self._pollers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._session.stop()
        self._started = False

    @property
    def config(self) -> HubConfig:
        return self._config

    @property
    def session(self) -> HubSession:
        return self._session

    @property
    def pending_count(self) -> int:
        return len(self._session.table)

    def _require_session(self) -> HubSession:
        if not self._started or not self._session.is_running:
            raise DoorHubSessionError("Client not started. Use 'async with DoorHubClient(...) as client:'")
        return self._session

    # ------------------------------------------------------------------
    # Observers and state
    # ------------------------------------------------------------------

    def add_observer(self, sink: NotificationSink) -> None:
        self.broadcaster.add(sink)

    def remove_observer(self, sink: NotificationSink) -> None:
        """Disconnect *sink*; commands it issued still resolve or time out."""
        self.broadcaster.remove(sink)

    def get_door(self, module_id: str) -> Door:
        return self.store.get(module_id)

    def doors(self) -> dict[str, Door]:
        return self.store.snapshot()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def submit(
        self,
        module_id: str | None,
        target: str | None = None,
        action: str | None = None,
        *,
        requester: NotificationSink | None = None,
    ) -> int:
        """Send a command without waiting; the outcome goes to *requester*."""
        return self._require_session().send(module_id, target, action, requester=requester)

    async def send_command(
        self,
        module_id: str | None,
        target: str | None = None,
        action: str | None = None,
    ) -> CommandFeedback:
        """Send a command and wait for its FEEDBACK.

        Raises
        ------
        DoorHubTimeoutError
            No FEEDBACK within ``config.command_timeout_ms``.
        DoorHubTransportError
            The datagram could not be sent.
        DoorHubSessionError
            The client was closed while the command was pending.
        """
        future: asyncio.Future[CommandFeedback] = asyncio.get_running_loop().create_future()
        self.submit(module_id, target, action, requester=FutureSink(future))
        return await future

    async def request_status(self, module_id: str, *, wait: bool = True) -> CommandFeedback | None:
        """Ask *module_id* for its status.

        With ``wait=False`` the query is fire-and-forget: the reply still
        updates the door store and is broadcast, and ``None`` is returned.
        """
        if not wait:
            self.submit(module_id, DEFAULT_TARGET, DEFAULT_ACTION)
            return None
        return await self.send_command(module_id, DEFAULT_TARGET, DEFAULT_ACTION)

    def send_raw(self, text: str, *, requester: NotificationSink | None = None) -> None:
        self._require_session().send_raw(text, requester=requester)

    async def lock(self, module_id: str | int) -> DoorCommandResult:
        return await _commands.lock(self, module_id)

    async def unlock(self, module_id: str | int) -> DoorCommandResult:
        return await _commands.unlock(self, module_id)

    async def get_door_info(self, module_id: str | int) -> DoorInfo | None:
        return await _commands.get_door_info(self, module_id)

    # ------------------------------------------------------------------
    # Convergence polling
    # ------------------------------------------------------------------

    def poller_tasks(self) -> list[asyncio.Task[PollState]]:
        return list(self._pollers.values())

    def _on_feedback(self, message: FeedbackMessage, normalized: NormalizedStatus) -> None:
        if not self._config.convergence_polling:
            return
        expected = expected_for_ack(message.raw_action)
        if expected is not None:
            self._start_poller(message.module_id, expected)

    def _start_poller(self, module_id: str, expected: CanonicalStatus) -> None:
        key = (module_id, expected)
        existing = self._pollers.get(key)
        if existing is not None and not existing.done():
            _logger.debug("Already polling %s for %s", module_id, expected.value)
            return

        poller = ConvergencePoller(
            module_id,
            expected,
            request_status=functools.partial(self.request_status, wait=False),
            read_lock=self.store.lock_locked,
            interval=self._config.poll_interval,
            max_attempts=self._config.poll_attempts,
        )
        task = asyncio.get_running_loop().create_task(self._run_poller(poller))
        self._pollers[key] = task
        task.add_done_callback(functools.partial(self._forget_poller, key))

    def _forget_poller(self, key: _PollerKey, task: asyncio.Task[PollState]) -> None:
        if self._pollers.get(key) is task:
            del self._pollers[key]

    async def _run_poller(self, poller: ConvergencePoller) -> PollState:
        state = await poller.run()
        self.broadcaster.publish(
            ObserverEvent(
                name=EventName.DOOR_CONVERGED,
                data={
                    "module": poller.module_id,
                    "expected": poller.expected.value,
                    "state": state.value,
                    "attempts": poller.attempts,
                },
            )
        )
        return state
