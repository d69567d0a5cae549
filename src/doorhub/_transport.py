"""UDP endpoint shared by all hub traffic."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

_logger = logging.getLogger(__name__)

Address = tuple[str, int]


class HubTransport(Protocol):
    """Structural datagram interface used by the session.

    Matches the subset of :class:`asyncio.DatagramTransport` we rely on, so
    tests can pass an in-memory double.
    """

    def sendto(self, data: bytes, addr: Address | None = None) -> None: ...

    def close(self) -> None: ...

    def is_closing(self) -> bool: ...


class HubDatagramProtocol(asyncio.DatagramProtocol):
    """Forwards each received datagram to the session on the loop thread."""

    def __init__(self, on_datagram: Callable[[bytes, Any], None]) -> None:
        self._on_datagram = on_datagram
        self.transport: asyncio.DatagramTransport | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore[assignment]
        sockname = transport.get_extra_info("sockname")
        _logger.info("UDP endpoint listening on %s", sockname)

    def datagram_received(self, data: bytes, addr: Any) -> None:
        _logger.debug("UDP rx from %s: %r", addr, data)
        try:
            self._on_datagram(data, addr)
        except Exception:
            # A single bad datagram must not tear down the endpoint.
            _logger.exception("Unhandled error while processing datagram from %s", addr)

    def error_received(self, exc: Exception) -> None:
        # ICMP port unreachable and friends surface here; UDP has no session to fail.
        _logger.warning("UDP endpoint error: %s", exc)

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None:
            _logger.warning("UDP endpoint closed with error: %s", exc)
        else:
            _logger.debug("UDP endpoint closed")
        self.transport = None


async def open_hub_endpoint(
    on_datagram: Callable[[bytes, Any], None],
    *,
    bind_host: str = "0.0.0.0",
    bind_port: int = 0,
    loop: asyncio.AbstractEventLoop | None = None,
) -> tuple[asyncio.DatagramTransport, HubDatagramProtocol]:
    """Bind the datagram endpoint; port ``0`` picks an ephemeral port.

    The hub replies to whatever source port the COMMAND came from, so one
    endpoint both sends and receives.
    """
    running = loop or asyncio.get_running_loop()
    transport, protocol = await running.create_datagram_endpoint(
        lambda: HubDatagramProtocol(on_datagram),
        local_addr=(bind_host, bind_port),
    )
    return transport, protocol
