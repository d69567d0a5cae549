"""Post-command convergence polling.

A LOCK or UNLOCK acknowledgement only says the module accepted the
command. The actuator takes a moment, so after an acknowledgement the
client keeps asking for STATUS until the reported lock state matches what
was requested, or gives up quietly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from doorhub._constants import ACK_LOCK, ACK_UNLOCK, DEFAULT_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL
from doorhub.exceptions import DoorHubError
from doorhub.models.status import CanonicalStatus

_logger = logging.getLogger(__name__)

_EXPECTED_BY_ACK: dict[str, CanonicalStatus] = {
    ACK_LOCK: CanonicalStatus.LOCKED,
    ACK_UNLOCK: CanonicalStatus.UNLOCKED,
}


class PollState(StrEnum):
    POLLING = "POLLING"
    CONVERGED = "CONVERGED"
    EXHAUSTED = "EXHAUSTED"


def expected_for_ack(raw_action: str) -> CanonicalStatus | None:
    """Status a LOCK/UNLOCK acknowledgement should converge to, else ``None``."""
    return _EXPECTED_BY_ACK.get((raw_action or "").strip())


class ConvergencePoller:
    """Polls one module until its lock state matches *expected*.

    Parameters
    ----------
    module_id : str
        Module to poll.
    expected : CanonicalStatus
        ``LOCKED`` or ``UNLOCKED``.
    request_status : callable
        Fire-and-forget STATUS query, awaited once per attempt.
    read_lock : callable
        Returns the module's current ``lock_locked`` tri-state.
    interval : float
        Seconds to wait after each query before checking.
    max_attempts : int
        Queries to send before giving up.
    """

    def __init__(
        self,
        module_id: str,
        expected: CanonicalStatus,
        *,
        request_status: Callable[[str], Awaitable[Any]],
        read_lock: Callable[[str], bool | None],
        interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_POLL_ATTEMPTS,
    ) -> None:
        if expected not in (CanonicalStatus.LOCKED, CanonicalStatus.UNLOCKED):
            raise ValueError(f"Cannot converge on {expected!r}")
        self.module_id = module_id
        self.expected = expected
        self.state = PollState.POLLING
        self.attempts = 0
        self._request_status = request_status
        self._read_lock = read_lock
        self._interval = interval
        self._max_attempts = max_attempts

    @property
    def key(self) -> tuple[str, CanonicalStatus]:
        return (self.module_id, self.expected)

    def is_converged(self) -> bool:
        return self._read_lock(self.module_id) is (self.expected == CanonicalStatus.LOCKED)

    async def run(self) -> PollState:
        while self.state == PollState.POLLING:
            try:
                await self._request_status(self.module_id)
            except DoorHubError as exc:
                # The next attempt may succeed; a lost query just costs one interval.
                _logger.debug("Status query for %s failed during polling: %s", self.module_id, exc)
            self.attempts += 1
            await asyncio.sleep(self._interval)

            if self.is_converged():
                self.state = PollState.CONVERGED
                _logger.info(
                    "%s converged to %s after %d status queries",
                    self.module_id,
                    self.expected.value,
                    self.attempts,
                )
            elif self.attempts >= self._max_attempts:
                self.state = PollState.EXHAUSTED
                _logger.info(
                    "%s did not reach %s after %d status queries; giving up",
                    self.module_id,
                    self.expected.value,
                    self.attempts,
                )
        return self.state
