"""JSONAPI remote console client.

Wires the supervisor, correlator, registry and router together behind a
small API: call() for request/response, subscribe() for push streams.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .config import RconConfig
from .correlator import CommandCorrelator
from .errors import RconConnectionError
from .router import MessageRouter
from .subscriptions import PushListener, Subscription, SubscriptionRegistry
from .supervisor import ConnectionState, ConnectionSupervisor
from .transport import (
    MockTransportFactory,
    TransportFactory,
    create_mock_transport_factory,
    create_websocket_transport_factory,
)

logger = logging.getLogger(__name__)


def _ignore_push(payload: Any) -> None:
    logger.debug(f"Push without listener: {payload!r}")


class RconClient:
    """Resilient client for the JSONAPI v2 socket API.

    The connection is opened lazily by the first call() or subscribe()
    (or eagerly by start()) and reopened automatically after a fixed
    delay whenever it drops, until close() is called.

    Usage:
        config = RconConfig(host="mc.example.org", username="admin",
                            password="secret", salt="pepper")
        async with RconClient(config, listener=print) as client:
            players = await client.call("players.online.names")
            client.subscribe("chat")

        # Testing
        factory = MockTransportFactory()
        client = create_test_client(factory)
    """

    def __init__(
        self,
        config: RconConfig,
        listener: PushListener | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self.config = config
        credentials = config.credentials

        if transport_factory is None:
            transport_factory = create_websocket_transport_factory(
                ping_interval=config.ping_interval,
                open_timeout=config.open_timeout,
            )

        self._supervisor = ConnectionSupervisor(
            config.url,
            transport_factory,
            self._route,
            reconnect_delay=config.reconnect_delay,
            on_open=self._on_open,
            on_close=self._on_close,
        )
        self._correlator = CommandCorrelator(
            self._supervisor,
            credentials,
            timeout=config.command_timeout,
            surface_remote_errors=config.surface_remote_errors,
        )
        self._registry = SubscriptionRegistry(
            self._supervisor,
            credentials,
            listener or _ignore_push,
        )
        self._router = MessageRouter(self._correlator, self._registry)

    @property
    def url(self) -> str:
        return self._supervisor.url

    @property
    def state(self) -> ConnectionState:
        return self._supervisor.state

    @property
    def is_connected(self) -> bool:
        return self._supervisor.is_connected

    @property
    def supervisor(self) -> ConnectionSupervisor:
        return self._supervisor

    @property
    def correlator(self) -> CommandCorrelator:
        return self._correlator

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    async def connect(self) -> None:
        """Ensure the connection is open.

        Raises:
            RconConnectionError: If the connection cannot be opened
        """
        await self._supervisor.connect()

    async def start(self) -> None:
        """Open the connection eagerly.

        A failure is logged rather than raised; the supervisor keeps
        retrying in the background.
        """
        try:
            await self._supervisor.connect()
        except RconConnectionError as e:
            logger.warning(f"Initial connection failed, will retry: {e}")

    async def call(self, method: str, arguments: list[Any] | None = None) -> Any:
        """Call a remote method and return its result.

        Raises:
            RconConnectionError: Connection unavailable or lost
            CommandTimeoutError: No response within config.command_timeout
            RemoteCommandError: The server answered with an error
        """
        return await self._correlator.call(method, arguments)

    def subscribe(
        self, source: str, show_previous: bool = False
    ) -> asyncio.Task[Subscription | None]:
        """Subscribe to pushes from `source` without waiting.

        Pushes go to the listener given at construction. The returned
        task resolves to None if the request could not be sent.
        """
        return self._registry.subscribe(source, show_previous)

    async def close(self) -> None:
        """Close the connection and stop reconnecting."""
        await self._supervisor.close()

    async def __aenter__(self) -> RconClient:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _route(self, frame: str) -> None:
        self._router.route(frame)

    async def _on_open(self) -> None:
        if self.config.resubscribe_on_reconnect and self._supervisor.epoch > 1:
            await self._registry.resubscribe()

    def _on_close(self, cause: Exception) -> None:
        if self.config.fail_pending_on_close:
            self._correlator.fail_all(cause)


# Factory functions


def create_client(
    host: str,
    port: int,
    username: str,
    password: str,
    salt: str = "",
    listener: PushListener | None = None,
    **options: Any,
) -> RconClient:
    """Create a client talking to a real server over WebSocket.

    Args:
        host: Server host name
        port: JSONAPI WebSocket port
        username: JSONAPI account
        password: JSONAPI password
        salt: JSONAPI salt
        listener: Receives subscription pushes
        **options: Any other RconConfig field

    Returns:
        RconClient using WebSocketTransport
    """
    config = RconConfig(
        host=host,
        port=port,
        username=username,
        password=password,
        salt=salt,
        **options,
    )
    return RconClient(config, listener=listener)


def create_test_client(
    transport_factory: MockTransportFactory | None = None,
    listener: PushListener | None = None,
    **options: Any,
) -> RconClient:
    """Create a client for testing.

    Args:
        transport_factory: Pre-configured mock factory (creates new if None)
        listener: Receives subscription pushes
        **options: Any RconConfig field

    Returns:
        RconClient with MockTransports
    """
    options.setdefault("username", "u")
    options.setdefault("password", "p")
    options.setdefault("salt", "s")
    return RconClient(
        RconConfig(**options),
        listener=listener,
        transport_factory=transport_factory or create_mock_transport_factory(),
    )
