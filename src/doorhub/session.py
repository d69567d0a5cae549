"""Hub transport session.

The session is the only owner of the datagram endpoint, the correlation id
counter and the pending-command table. Everything runs on one event loop:
sends are non-blocking ``sendto`` calls, replies arrive through the
datagram protocol callback and deadlines fire as loop timers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from doorhub._codec import decode_datagram, encode_command, encode_raw
from doorhub._constants import DEFAULT_ACTION, DEFAULT_MODULE_ID, DEFAULT_TARGET
from doorhub._correlation import CorrelationTable
from doorhub._transport import HubTransport, open_hub_endpoint
from doorhub.broadcast import NotificationSink, ObserverBroadcaster, deliver_safely
from doorhub.config import HubConfig
from doorhub.exceptions import DoorHubSessionError, DoorHubTransportError
from doorhub.ingestion.normalize import normalize_event, normalize_status
from doorhub.models.messages import (
    EventMessage,
    FeedbackMessage,
    HeartbeatMessage,
    HelloMessage,
    InboundMessage,
    RawMessage,
)
from doorhub.models.status import NormalizedStatus
from doorhub.state.events import ErrorKind, EventName, ObserverEvent, command_error
from doorhub.state.store import DoorStore

_logger = logging.getLogger(__name__)

FeedbackListener = Callable[[FeedbackMessage, NormalizedStatus], None]


class HubSession:
    """Correlated command channel to one hub.

    Usage::

        async with HubSession(config, broadcaster=b, store=s) as session:
            session.send("D2", "D0", "LOCK", requester=sink)
    """

    def __init__(
        self,
        config: HubConfig,
        *,
        broadcaster: ObserverBroadcaster,
        store: DoorStore,
        transport: HubTransport | None = None,
    ) -> None:
        self._config = config
        self._broadcaster = broadcaster
        self._store = store
        self._transport = transport
        self._table = CorrelationTable()
        self._next_id = 1
        self._feedback_listeners: list[FeedbackListener] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HubSession:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Bind the endpoint unless a transport was injected."""
        if self._transport is not None and not self._transport.is_closing():
            return
        transport, _protocol = await open_hub_endpoint(
            self.handle_datagram,
            bind_host=self._config.bind_host,
            bind_port=self._config.bind_port,
        )
        self._transport = transport
        _logger.info(
            "Hub session started: forwarding commands to %s:%d",
            self._config.hub_host,
            self._config.hub_port,
        )

    async def stop(self) -> None:
        """Close the endpoint and fail every pending command."""
        cancelled = self._table.cancel_all("session closed")
        if cancelled:
            _logger.info("Cancelled %d pending command(s) on stop", cancelled)
        transport = self._transport
        self._transport = None
        if transport is not None and not transport.is_closing():
            transport.close()

    @property
    def is_running(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def table(self) -> CorrelationTable:
        return self._table

    def add_feedback_listener(self, listener: FeedbackListener) -> None:
        """Call *listener* after every FEEDBACK has been applied and broadcast."""
        self._feedback_listeners.append(listener)

    def _require_transport(self) -> HubTransport:
        if self._transport is None or self._transport.is_closing():
            raise DoorHubSessionError("Session not started. Use 'async with HubSession(...)' or call start()")
        return self._transport

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def _allocate_id(self) -> int:
        correlation_id = self._next_id
        self._next_id += 1
        return correlation_id

    def send(
        self,
        module_id: str | None,
        target: str | None = None,
        action: str | None = None,
        *,
        requester: NotificationSink | None = None,
    ) -> int:
        """Send a COMMAND and return its correlation id.

        With a *requester* the command is tracked and the requester gets
        exactly one terminal event. Without one the send is
        fire-and-forget; a send failure then raises
        :class:`DoorHubTransportError` instead of being delivered.
        """
        transport = self._require_transport()
        module = (module_id or "").strip() or DEFAULT_MODULE_ID
        tgt = (target or "").strip() or DEFAULT_TARGET
        act = (action or "").strip() or DEFAULT_ACTION

        correlation_id = self._allocate_id()
        payload = encode_command(module, correlation_id, tgt, act)
        try:
            transport.sendto(payload, self._config.hub_address)
        except OSError as exc:
            _logger.error("UDP send of correlation id %d to %s failed: %s", correlation_id, module, exc)
            if requester is None:
                raise DoorHubTransportError(
                    f"send failed: {exc}",
                    module_id=module,
                    correlation_id=correlation_id,
                ) from exc
            deliver_safely(requester, command_error(module, correlation_id, str(exc), kind=ErrorKind.TRANSPORT))
            return correlation_id

        _logger.debug("Sent COMMAND to %s:%d -> %s", self._config.hub_host, self._config.hub_port, payload.strip())

        if requester is not None:
            self._table.register(
                correlation_id,
                requester,
                self._config.command_timeout_ms,
                module_id=module,
                target=tgt,
                action=act,
            )
        return correlation_id

    def send_raw(self, text: str, *, requester: NotificationSink | None = None) -> None:
        """Send *text* verbatim; the requester hears ``raw-sent`` or ``command-error``."""
        transport = self._require_transport()
        try:
            transport.sendto(encode_raw(text), self._config.hub_address)
        except OSError as exc:
            _logger.error("Raw UDP send failed: %s", exc)
            if requester is None:
                raise DoorHubTransportError(f"send failed: {exc}") from exc
            deliver_safely(requester, command_error("", None, str(exc), kind=ErrorKind.TRANSPORT))
            return
        if requester is not None:
            deliver_safely(requester, ObserverEvent(name=EventName.RAW_SENT, data={"raw": text}))

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def handle_datagram(self, data: bytes | str, addr: Any = None) -> InboundMessage:
        """Decode and dispatch one received datagram."""
        message = decode_datagram(data)

        if not isinstance(message, RawMessage):
            self._store.touch(message.module_id)

        if isinstance(message, FeedbackMessage):
            self._handle_feedback(message)
        elif isinstance(message, EventMessage):
            self._handle_event(message)
        elif isinstance(message, HeartbeatMessage):
            self._broadcaster.publish(
                ObserverEvent(name=EventName.HUB_HEARTBEAT, data={"module": message.module_id, "raw": message.raw})
            )
        elif isinstance(message, HelloMessage):
            self._broadcaster.publish(
                ObserverEvent(name=EventName.HUB_HELLO, data={"module": message.module_id, "raw": message.raw})
            )
        else:
            self._broadcaster.publish(ObserverEvent(name=EventName.HUB_RAW, data={"raw": message.raw}))
        return message

    def _handle_feedback(self, message: FeedbackMessage) -> None:
        normalized = normalize_status(message.raw_action)
        self._store.apply(message.module_id, normalized)

        feedback = ObserverEvent(
            name=EventName.COMMAND_FEEDBACK,
            data={
                "module": message.module_id,
                "correlation_id": message.correlation_id,
                "target": message.target,
                "status": normalized.status.value,
                "action": message.raw_action,
                "raw": message.raw,
            },
        )
        if not self._table.resolve(message.correlation_id, feedback):
            _logger.debug(
                "No pending entry for correlation id %d; pending=%s",
                message.correlation_id,
                self._table.pending_ids(),
            )

        # Other observers care about door state even if they did not ask.
        self._broadcaster.publish(
            ObserverEvent(
                name=EventName.DOOR_FEEDBACK,
                data={
                    "module": message.module_id,
                    "target": message.target,
                    "status": normalized.status.value,
                    "action": normalized.status.wire,
                    "raw_action": message.raw_action,
                },
            )
        )
        if self._config.legacy_feedback_broadcast:
            self._broadcaster.publish(feedback)

        for listener in list(self._feedback_listeners):
            try:
                listener(message, normalized)
            except Exception:
                _logger.debug("Feedback listener failed", exc_info=True)

    def _handle_event(self, message: EventMessage) -> None:
        normalized = normalize_event(message.raw_event)
        self._store.apply(message.module_id, normalized)
        self._broadcaster.publish(
            ObserverEvent(
                name=EventName.HUB_EVENT,
                data={
                    "module": message.module_id,
                    "type": "EVENT",
                    "target": message.target,
                    "event": message.raw_event,
                    "status": normalized.status.value,
                    "raw": message.raw,
                },
            )
        )
