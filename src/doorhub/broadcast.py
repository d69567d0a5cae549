"""Observer fan-out.

Owns the set of connected observers and delivers every published event
to each of them. One misbehaving observer must never stop delivery to the
others, so per-sink failures are logged and skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from doorhub.exceptions import DoorHubError, DoorHubSessionError, DoorHubTimeoutError, DoorHubTransportError
from doorhub.models.command import CommandFeedback
from doorhub.state.events import ErrorKind, EventName, ObserverEvent

_logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationSink(Protocol):
    """Anything that can receive observer events.

    Implemented by real observer connections and by one-shot internal
    adapters that wait for a single command outcome.
    """

    def deliver(self, event: ObserverEvent) -> None: ...


def deliver_safely(sink: NotificationSink, event: ObserverEvent) -> bool:
    """Deliver to one sink; a sink that raises is logged, not propagated."""
    try:
        sink.deliver(event)
    except Exception:
        _logger.debug("Delivery of %s to %r failed", event.name, sink, exc_info=True)
        return False
    return True


class ObserverBroadcaster:
    """Publishes events to every connected observer."""

    def __init__(self) -> None:
        # dict keeps insertion order, so delivery order is connection order.
        self._observers: dict[int, NotificationSink] = {}

    def add(self, sink: NotificationSink) -> None:
        self._observers[id(sink)] = sink
        _logger.info("Observer connected (%d total)", len(self._observers))

    def remove(self, sink: NotificationSink) -> None:
        """Forget *sink*. Its in-flight commands are left untouched."""
        if self._observers.pop(id(sink), None) is not None:
            _logger.info("Observer disconnected (%d remaining)", len(self._observers))

    def publish(self, event: ObserverEvent) -> int:
        """Deliver *event* to every current observer; return the success count."""
        delivered = 0
        for sink in list(self._observers.values()):
            if deliver_safely(sink, event):
                delivered += 1
        return delivered

    def __len__(self) -> int:
        return len(self._observers)

    def __contains__(self, sink: object) -> bool:
        return id(sink) in self._observers


def _error_from_event(data: dict[str, object]) -> DoorHubError:
    message = str(data.get("error") or "command failed")
    module_id = str(data.get("module") or "")
    raw_id = data.get("correlation_id")
    correlation_id = raw_id if isinstance(raw_id, int) else None
    kind = data.get("kind")
    if kind == ErrorKind.TIMEOUT:
        return DoorHubTimeoutError(message, module_id=module_id, correlation_id=correlation_id)
    if kind == ErrorKind.CLOSED:
        return DoorHubSessionError(message)
    return DoorHubTransportError(message, module_id=module_id, correlation_id=correlation_id)


class FutureSink:
    """One-shot sink that completes an asyncio future.

    The first ``command-feedback`` sets the result; the first
    ``command-error`` sets the matching exception. Anything after that is
    ignored.
    """

    def __init__(self, future: asyncio.Future[CommandFeedback]) -> None:
        self.future = future

    def deliver(self, event: ObserverEvent) -> None:
        if self.future.done():
            return
        if event.name == EventName.COMMAND_FEEDBACK:
            self.future.set_result(CommandFeedback.from_event_data(event.data))
        elif event.name == EventName.COMMAND_ERROR:
            self.future.set_exception(_error_from_event(event.data))
