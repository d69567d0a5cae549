"""Correlation of outbound commands with their FEEDBACK replies.

Each in-flight command is a :class:`PendingCommand` keyed by its
correlation id. A reply and the deadline race to remove the entry; the
``dict.pop`` that wins delivers the single terminal outcome, the loser
finds nothing and does nothing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from doorhub._constants import TIMEOUT_ERROR_MESSAGE
from doorhub.broadcast import NotificationSink, deliver_safely
from doorhub.state.events import ErrorKind, ObserverEvent, command_error

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PendingCommand:
    """A command awaiting its FEEDBACK.

    ``deadline`` is on the event loop's monotonic clock.
    """

    correlation_id: int
    module_id: str
    target: str
    action: str
    deadline: float
    requester: NotificationSink
    timer: asyncio.TimerHandle | None = None


class CorrelationTable:
    """Pending commands by correlation id, with per-entry deadlines."""

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._pending: dict[int, PendingCommand] = {}

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def register(
        self,
        correlation_id: int,
        requester: NotificationSink,
        timeout_ms: int,
        *,
        module_id: str = "",
        target: str = "",
        action: str = "",
    ) -> bool:
        """Track a command and arm its deadline.

        A duplicate id means the id generator is broken. It is logged and
        the new registration is refused; the existing entry is kept.
        """
        if correlation_id in self._pending:
            _logger.error(
                "Correlation id %d already pending (module=%s action=%s); refusing duplicate",
                correlation_id,
                module_id,
                action,
            )
            return False

        loop = self._require_loop()
        timeout_s = timeout_ms / 1000.0
        entry = PendingCommand(
            correlation_id=correlation_id,
            module_id=module_id,
            target=target,
            action=action,
            deadline=loop.time() + timeout_s,
            requester=requester,
        )
        entry.timer = loop.call_later(timeout_s, self.expire, correlation_id)
        self._pending[correlation_id] = entry
        _logger.debug("Registered correlation id %d for %s (%d pending)", correlation_id, module_id, len(self._pending))
        return True

    def resolve(self, correlation_id: int, outcome: ObserverEvent) -> bool:
        """Deliver *outcome* to the requester; no-op if already settled."""
        entry = self._pending.pop(correlation_id, None)
        if entry is None:
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        deliver_safely(entry.requester, outcome)
        return True

    def expire(self, correlation_id: int) -> bool:
        """Deadline callback: deliver a timeout error if still pending."""
        entry = self._pending.pop(correlation_id, None)
        if entry is None:
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        _logger.warning(
            "No FEEDBACK for correlation id %d (module=%s action=%s)",
            correlation_id,
            entry.module_id,
            entry.action,
        )
        deliver_safely(
            entry.requester,
            command_error(entry.module_id, correlation_id, TIMEOUT_ERROR_MESSAGE, kind=ErrorKind.TIMEOUT),
        )
        return True

    def cancel_all(self, reason: str) -> int:
        """Fail every pending command with *reason*; return how many."""
        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            if entry.timer is not None:
                entry.timer.cancel()
            deliver_safely(
                entry.requester,
                command_error(entry.module_id, entry.correlation_id, reason, kind=ErrorKind.CLOSED),
            )
        return len(entries)

    def get(self, correlation_id: int) -> PendingCommand | None:
        return self._pending.get(correlation_id)

    def pending_ids(self) -> list[int]:
        return sorted(self._pending)

    def __contains__(self, correlation_id: object) -> bool:
        return correlation_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)
