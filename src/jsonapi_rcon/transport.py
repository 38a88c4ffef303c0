"""Frame transports for the client.

The supervisor never touches sockets directly. It asks a factory for a
fresh FrameTransport per connection attempt, so a transport instance is
used for exactly one connection and then discarded.

Architecture:
- FrameTransport is the PROTOCOL every transport implements
- WebSocketTransport speaks to a real server via `websockets`
- MockTransport keeps everything in memory for tests
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol, runtime_checkable

import websockets
from websockets.exceptions import ConnectionClosed

from .errors import RconConnectionError
from .protocol import parse_request_frame

logger = logging.getLogger(__name__)


@runtime_checkable
class FrameTransport(Protocol):
    """Protocol for a single text-frame connection.

    Lifecycle: open() once, then send() and frames() until the
    connection ends, then close(). frames() returning means the remote
    side closed the connection.
    """

    async def open(self, url: str) -> None:
        """Open the connection.

        Raises:
            Exception: Any error means the connection never opened
        """
        ...

    async def send(self, text: str) -> None:
        """Send one text frame.

        Raises:
            RconConnectionError: If the connection is not open
        """
        ...

    def frames(self) -> AsyncIterator[str]:
        """Yield inbound text frames until the connection closes."""
        ...

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        ...


TransportFactory = Callable[[], FrameTransport]


class WebSocketTransport:
    """Transport over a WebSocket connection."""

    def __init__(
        self,
        ping_interval: float | None = 20.0,
        open_timeout: float | None = 10.0,
    ) -> None:
        self._ping_interval = ping_interval
        self._open_timeout = open_timeout
        self._ws: Any = None  # websockets ClientConnection

    async def open(self, url: str) -> None:
        self._ws = await websockets.connect(
            url,
            ping_interval=self._ping_interval,
            open_timeout=self._open_timeout,
        )
        logger.info(f"WebSocket opened: {url}")

    async def send(self, text: str) -> None:
        if self._ws is None:
            raise RconConnectionError("WebSocket not connected")
        try:
            await self._ws.send(text)
        except ConnectionClosed as e:
            raise RconConnectionError(f"WebSocket closed: {e}") from e

    async def frames(self) -> AsyncIterator[str]:
        if self._ws is None:
            raise RconConnectionError("WebSocket not connected")

        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8")
                yield message
        except ConnectionClosed as e:
            logger.info(f"WebSocket closed: {e}")

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None


class MockTransport:
    """In-memory transport for testing.

    Records outbound frames and lets tests inject inbound ones or drop
    the connection.

    Usage:
        transport = MockTransport()
        client = create_test_client(transport)
        task = asyncio.create_task(client.call("getPlayers"))

        kind, envelope = await transport.next_request()
        transport.inject([{"result": "success", "tag": envelope["tag"],
                           "source": "getPlayers", "success": ["Alice"]}])
        assert await task == ["Alice"]
    """

    def __init__(self, fail_open: Exception | None = None, hold_open: bool = False) -> None:
        self.url: str | None = None
        self.opened = False
        self.closed = False
        self.sent: list[str] = []
        self.outbox: asyncio.Queue[str] = asyncio.Queue()
        self._fail_open = fail_open
        self._inbound: asyncio.Queue[str | None] = asyncio.Queue()
        self._release = asyncio.Event()
        if not hold_open:
            self._release.set()

    def release_open(self) -> None:
        """Let a held open() complete."""
        self._release.set()

    async def open(self, url: str) -> None:
        self.url = url
        await self._release.wait()
        if self.closed:
            raise RconConnectionError("Transport closed while opening")
        if self._fail_open is not None:
            raise self._fail_open
        self.opened = True

    async def send(self, text: str) -> None:
        if not self.opened or self.closed:
            raise RconConnectionError("Mock transport not open")
        self.sent.append(text)
        self.outbox.put_nowait(text)

    def inject(self, data: Any) -> None:
        """Deliver an inbound frame. Non-strings are JSON encoded."""
        frame = data if isinstance(data, str) else json.dumps(data)
        self._inbound.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self.closed = True
        self._inbound.put_nowait(None)

    async def frames(self) -> AsyncIterator[str]:
        while True:
            frame = await self._inbound.get()
            if frame is None:
                return
            yield frame

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._release.set()
        self._inbound.put_nowait(None)

    async def next_sent(self, timeout: float = 1.0) -> str:
        """Wait for the next outbound frame."""
        return await asyncio.wait_for(self.outbox.get(), timeout=timeout)

    async def next_request(self, timeout: float = 1.0) -> tuple[str, dict[str, Any]]:
        """Wait for the next outbound frame and decode its envelope."""
        kind, envelopes = parse_request_frame(await self.next_sent(timeout))
        return kind, envelopes[0]


class MockTransportFactory:
    """Creates MockTransports and keeps every one it made.

    Args:
        fail_open: Number of upcoming transports whose open() fails
        hold_open: Whether new transports wait for release_open()
    """

    def __init__(self, fail_open: int = 0, hold_open: bool = False) -> None:
        self.fail_open = fail_open
        self.hold_open = hold_open
        self.transports: list[MockTransport] = []

    def __call__(self) -> MockTransport:
        error = None
        if self.fail_open > 0:
            self.fail_open -= 1
            error = OSError("Connection refused")
        transport = MockTransport(fail_open=error, hold_open=self.hold_open)
        self.transports.append(transport)
        return transport

    @property
    def latest(self) -> MockTransport:
        return self.transports[-1]

    async def wait_for_transports(self, count: int, timeout: float = 1.0) -> MockTransport:
        """Wait until at least `count` transports exist; return the latest."""
        async with asyncio.timeout(timeout):
            while len(self.transports) < count:
                await asyncio.sleep(0.005)
        return self.latest


# Factory functions


def create_websocket_transport_factory(
    ping_interval: float | None = 20.0,
    open_timeout: float | None = 10.0,
) -> TransportFactory:
    """Factory producing a new WebSocketTransport per connection attempt."""
    return functools.partial(
        WebSocketTransport,
        ping_interval=ping_interval,
        open_timeout=open_timeout,
    )


def create_mock_transport_factory(fail_open: int = 0) -> MockTransportFactory:
    """Factory producing MockTransports for testing."""
    return MockTransportFactory(fail_open=fail_open)
