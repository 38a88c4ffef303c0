"""Connection lifecycle supervisor.

Owns the single logical connection of a client. connect() is idempotent:
every caller awaits the same shared open-future, so concurrent callers
never cause a second transport to be opened.

On loss of the connection the supervisor arms exactly one reconnect task
that calls connect() again after a fixed delay. A fresh connect() from a
caller cancels the pending reconnect and tries immediately instead. There
is no backoff growth and no retry limit; only close() stops the cycle.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from .errors import RconConnectionError
from .transport import FrameTransport, TransportFactory

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 5.0


class ConnectionState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECT_SCHEDULED = "reconnect_scheduled"
    CLOSED = "closed"


def _consume_exception(future: asyncio.Future[None]) -> None:
    # The open-future may fail with nobody awaiting it (e.g. a dropped
    # background reconnect); mark the exception as retrieved.
    if not future.cancelled():
        future.exception()


class ConnectionSupervisor:
    """Keeps one transport open and reopens it when it drops.

    Args:
        url: Endpoint passed to FrameTransport.open()
        transport_factory: Creates a fresh transport per connection attempt
        on_frame: Called synchronously with every inbound text frame
        reconnect_delay: Seconds between a loss of connection and the retry
        on_open: Awaited after every successful open
        on_close: Called with the cause whenever an open connection is lost
    """

    def __init__(
        self,
        url: str,
        transport_factory: TransportFactory,
        on_frame: Callable[[str], None],
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        on_open: Callable[[], Awaitable[None]] | None = None,
        on_close: Callable[[Exception], None] | None = None,
    ) -> None:
        self._url = url
        self._transport_factory = transport_factory
        self._on_frame = on_frame
        self._on_open = on_open
        self._on_close = on_close
        self.reconnect_delay = reconnect_delay

        self._state = ConnectionState.DISCONNECTED
        self._transport: FrameTransport | None = None
        self._connection: asyncio.Future[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._epoch = 0
        self._closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.OPEN

    @property
    def epoch(self) -> int:
        """Number of connections opened so far."""
        return self._epoch

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None

    async def connect(self) -> None:
        """Ensure the connection is open, opening it if needed.

        Raises:
            RconConnectionError: If the transport fails to open, closes
                before opening, or the supervisor was closed
        """
        if self._closed:
            raise RconConnectionError("Client is closed")

        self._cancel_reconnect()

        if self._connection is None:
            self._connection = self._start()

        await asyncio.shield(self._connection)

    async def send(self, text: str) -> None:
        """Send a text frame over the open connection.

        Raises:
            RconConnectionError: If there is no open connection
        """
        transport = self._transport
        if transport is None or self._state != ConnectionState.OPEN:
            raise RconConnectionError("Not connected")
        await transport.send(text)

    async def close(self) -> None:
        """Tear down the connection and stop reconnecting. Terminal."""
        if self._closed:
            return
        self._closed = True
        was_open = self._state == ConnectionState.OPEN

        self._cancel_reconnect()

        transport = self._transport
        reader_task = self._reader_task
        opened = self._connection
        self._transport = None
        self._reader_task = None
        self._connection = None
        self._state = ConnectionState.CLOSED

        if opened is not None and not opened.done():
            opened.set_exception(RconConnectionError("Client closed"))

        if reader_task:
            reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader_task

        if transport:
            await transport.close()

        if was_open:
            logger.info(f"Connection to {self._url} closed")
            self._notify_close(RconConnectionError("Client closed"))

    def _start(self) -> asyncio.Future[None]:
        """Create a transport and start opening it in the background."""
        loop = asyncio.get_running_loop()
        opened: asyncio.Future[None] = loop.create_future()
        opened.add_done_callback(_consume_exception)

        transport = self._transport_factory()
        self._transport = transport
        self._state = ConnectionState.CONNECTING
        logger.debug(f"Connecting to {self._url}")

        self._reader_task = asyncio.create_task(self._run(transport, opened))
        return opened

    async def _run(self, transport: FrameTransport, opened: asyncio.Future[None]) -> None:
        """Open the transport, then pump frames until it closes."""
        error: Exception | None = None
        try:
            await transport.open(self._url)
        except Exception as e:
            logger.warning(f"Failed to connect to {self._url}: {e}")
            error = e
        else:
            self._state = ConnectionState.OPEN
            self._epoch += 1
            logger.info(f"Connected to {self._url}")
            if not opened.done():
                opened.set_result(None)

            if self._on_open:
                try:
                    await self._on_open()
                except Exception as e:
                    logger.exception(f"Error in open hook: {e}")

            try:
                async for frame in transport.frames():
                    try:
                        self._on_frame(frame)
                    except Exception as e:
                        logger.exception(f"Error handling frame: {e}")
            except Exception as e:
                logger.warning(f"Connection to {self._url} failed: {e}")
                error = e

        self._handle_close(transport, opened, error)

        try:
            await transport.close()
        except Exception as e:
            logger.debug(f"Error closing transport: {e}")

    def _handle_close(
        self,
        transport: FrameTransport,
        opened: asyncio.Future[None],
        error: Exception | None,
    ) -> None:
        """Clear the connection handle and arm the reconnect."""
        if transport is not self._transport:
            # Superseded or torn down by close()
            return

        was_open = self._state == ConnectionState.OPEN
        self._transport = None
        self._connection = None
        self._reader_task = None

        if not opened.done():
            exc = RconConnectionError(f"Connection to {self._url} closed before opening")
            exc.__cause__ = error
            opened.set_exception(exc)

        self._state = ConnectionState.DISCONNECTED
        if was_open:
            logger.info(f"Connection to {self._url} lost")
            cause = RconConnectionError(f"Connection to {self._url} lost")
            cause.__cause__ = error
            self._notify_close(cause)

        self._schedule_reconnect()

    def _notify_close(self, cause: Exception) -> None:
        if self._on_close:
            try:
                self._on_close(cause)
            except Exception as e:
                logger.exception(f"Error in close hook: {e}")

    def _schedule_reconnect(self) -> None:
        self._state = ConnectionState.RECONNECT_SCHEDULED
        logger.info(f"Reconnecting to {self._url} in {self.reconnect_delay}s")
        self._reconnect_task = asyncio.create_task(self._reconnect_after(self.reconnect_delay))

    def _cancel_reconnect(self) -> None:
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None
        if self._state == ConnectionState.RECONNECT_SCHEDULED:
            self._state = ConnectionState.DISCONNECTED

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        # Clear first so connect() does not cancel the running task
        self._reconnect_task = None
        try:
            await self.connect()
        except RconConnectionError as e:
            logger.debug(f"Reconnect attempt failed: {e}")
