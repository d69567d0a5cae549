"""WebSocket observer surface.

Each browser connection becomes one :class:`WebSocketObserver`. Broadcast
events are written to it as ``{"event": name, "data": {...}}``; the
request/response calls of the older UI are answered with
``{"event": "reply", "request_id": ..., "data": ...}``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from aiohttp import WSCloseCode, WSMsgType, web

from doorhub.client import DoorHubClient
from doorhub.config import HubConfig
from doorhub.exceptions import DoorHubError
from doorhub.state.events import ErrorKind, ObserverEvent, command_error

_logger = logging.getLogger(__name__)

CLIENT_KEY: web.AppKey[DoorHubClient] = web.AppKey("doorhub_client", DoorHubClient)
TASKS_KEY: web.AppKey[set[asyncio.Task[None]]] = web.AppKey("doorhub_tasks", set)

OBSERVER_QUEUE_LIMIT = 256

Handler = Callable[[DoorHubClient, "WebSocketObserver", dict[str, Any], Any], Awaitable[None]]


class WebSocketObserver:
    """Notification sink backed by one WebSocket connection.

    ``deliver`` only enqueues; a writer task drains the queue so a slow
    browser never blocks the datagram handler. An observer that falls
    ``max_queue`` events behind is closed with a policy-violation frame.
    Once closed, deliveries are dropped silently.
    """

    def __init__(self, ws: web.WebSocketResponse, *, max_queue: int = OBSERVER_QUEUE_LIMIT) -> None:
        self._ws = ws
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=max_queue)
        self._writer: asyncio.Task[None] | None = None
        self._closer: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        self._writer = asyncio.get_running_loop().create_task(self._write_loop())

    def deliver(self, event: ObserverEvent) -> None:
        self.send_json(event.to_wire())

    def reply(self, request_id: Any, data: Any) -> None:
        self.send_json({"event": "reply", "request_id": request_id, "data": data})

    def send_json(self, payload: dict[str, Any]) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            _logger.warning("Observer is %d events behind, closing its socket", self._queue.maxsize)
            self._drop()

    def _drop(self) -> None:
        self._closed = True
        if self._writer is not None:
            self._writer.cancel()
        self._closer = asyncio.get_running_loop().create_task(self._close_socket())

    async def _close_socket(self) -> None:
        try:
            await self._ws.close(code=WSCloseCode.POLICY_VIOLATION, message=b"observer too slow")
        except (ConnectionResetError, RuntimeError) as exc:
            _logger.debug("Closing slow observer socket failed: %s", exc)

    async def _write_loop(self) -> None:
        while True:
            payload = await self._queue.get()
            if payload is None:
                return
            try:
                await self._ws.send_json(payload)
            except (ConnectionResetError, RuntimeError) as exc:
                _logger.debug("Observer socket gone, dropping further events: %s", exc)
                self._closed = True
                return

    async def close(self) -> None:
        self._closed = True
        writer, self._writer = self._writer, None
        if writer is not None:
            if not writer.done():
                try:
                    self._queue.put_nowait(None)
                except asyncio.QueueFull:
                    writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)
        closer, self._closer = self._closer, None
        if closer is not None:
            await closer


# ----------------------------------------------------------------------
# Inbound message handlers
# ----------------------------------------------------------------------


async def _handle_send_command(
    client: DoorHubClient, observer: WebSocketObserver, data: dict[str, Any], request_id: Any
) -> None:
    client.submit(data.get("module"), data.get("target"), data.get("action"), requester=observer)


async def _handle_raw_send(
    client: DoorHubClient, observer: WebSocketObserver, data: dict[str, Any], request_id: Any
) -> None:
    raw = data.get("raw")
    if not raw:
        return
    client.send_raw(str(raw), requester=observer)


async def _handle_get_door_info(
    client: DoorHubClient, observer: WebSocketObserver, data: dict[str, Any], request_id: Any
) -> None:
    info = await client.get_door_info(data.get("module", ""))
    observer.reply(request_id, info.model_dump(mode="json") if info is not None else None)


async def _handle_lock(
    client: DoorHubClient, observer: WebSocketObserver, data: dict[str, Any], request_id: Any
) -> None:
    result = await client.lock(data.get("module", ""))
    observer.reply(request_id, result.model_dump(mode="json"))


async def _handle_unlock(
    client: DoorHubClient, observer: WebSocketObserver, data: dict[str, Any], request_id: Any
) -> None:
    result = await client.unlock(data.get("module", ""))
    observer.reply(request_id, result.model_dump(mode="json"))


_HANDLERS: dict[str, Handler] = {
    "send-command": _handle_send_command,
    "raw-send": _handle_raw_send,
    "get-door-info": _handle_get_door_info,
    "lock-door": _handle_lock,
    "unlock-door": _handle_unlock,
}


def _reject(observer: WebSocketObserver, error: str) -> None:
    _logger.warning("Rejected observer message: %s", error)
    observer.deliver(command_error("", None, error, kind=ErrorKind.INVALID))


async def dispatch_message(client: DoorHubClient, observer: WebSocketObserver, text: str) -> None:
    """Route one inbound text frame to its handler."""
    try:
        message = json.loads(text)
    except json.JSONDecodeError as exc:
        _reject(observer, f"invalid JSON: {exc}")
        return
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        _reject(observer, "expected an object with an 'event' field")
        return

    event = message["event"]
    data = message.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        _reject(observer, f"'data' for {event} must be an object")
        return
    request_id = message.get("request_id", data.get("request_id"))

    handler = _HANDLERS.get(event)
    if handler is None:
        _reject(observer, f"unknown event {event!r}")
        return

    _logger.debug("Observer -> %s %s", event, data)
    try:
        await handler(client, observer, data, request_id)
    except DoorHubError as exc:
        _logger.warning("%s failed: %s", event, exc)
        observer.deliver(command_error(str(data.get("module") or ""), None, str(exc)))


# ----------------------------------------------------------------------
# Routes
# ----------------------------------------------------------------------


async def health(request: web.Request) -> web.Response:
    client = request.app[CLIENT_KEY]
    return web.json_response(
        {
            "status": "ok",
            "observers": len(client.broadcaster),
            "pending": client.pending_count,
            "doors": [door.as_payload() for door in client.doors().values()],
        }
    )


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    client = request.app[CLIENT_KEY]
    tasks = request.app[TASKS_KEY]
    ws = web.WebSocketResponse(heartbeat=30.0)
    await ws.prepare(request)

    observer = WebSocketObserver(ws)
    observer.start()
    client.add_observer(observer)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                # Lock and door-info calls wait for the hub; keep reading meanwhile.
                task = asyncio.get_running_loop().create_task(dispatch_message(client, observer, msg.data))
                tasks.add(task)
                task.add_done_callback(tasks.discard)
            elif msg.type == WSMsgType.ERROR:
                _logger.warning("Observer socket error: %s", ws.exception())
    finally:
        # Pending commands from this observer stay in flight.
        client.remove_observer(observer)
        await observer.close()
    return ws


def create_app(client: DoorHubClient) -> web.Application:
    """Build the aiohttp application; the client is started with the app."""
    app = web.Application()
    app[CLIENT_KEY] = client
    app[TASKS_KEY] = set()

    async def _client_ctx(app: web.Application) -> AsyncIterator[None]:
        async with app[CLIENT_KEY]:
            yield
            pending = list(app[TASKS_KEY])
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    app.cleanup_ctx.append(_client_ctx)
    app.router.add_get("/health", health)
    app.router.add_get("/ws", websocket_handler)
    return app


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Bridge a UDP door hub to WebSocket observers.")
    parser.add_argument("--host", help="Web bind host (default: DOORHUB_WEB_HOST or 0.0.0.0).")
    parser.add_argument("--port", type=int, help="Web bind port (default: DOORHUB_WEB_PORT or 8080).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every datagram.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    config = HubConfig.from_env()
    host = args.host or config.web_host
    port = args.port or config.web_port
    _logger.info("Forwarding to hub %s:%d, serving observers on %s:%d", config.hub_host, config.hub_port, host, port)
    web.run_app(create_app(DoorHubClient(config)), host=host, port=port, print=None)


if __name__ == "__main__":
    main()
