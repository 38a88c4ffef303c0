"""Unit tests for the RconClient facade."""

from __future__ import annotations

import asyncio

import pytest

from jsonapi_rcon import (
    ConnectionState,
    MockTransportFactory,
    RconClient,
    RconConfig,
    WebSocketTransport,
    create_client,
    create_test_client,
)


class TestLifecycle:
    """Tests for start(), close() and the context manager."""

    @pytest.mark.asyncio
    async def test_context_manager_connects_and_closes(self, client, factory):
        async with client:
            assert client.is_connected
            assert client.state == ConnectionState.OPEN

        assert client.state == ConnectionState.CLOSED
        assert factory.latest.closed

    @pytest.mark.asyncio
    async def test_start_failure_is_not_raised(self, wait_until):
        """A failed first connection keeps retrying in the background."""
        factory = MockTransportFactory(fail_open=1)
        client = create_test_client(factory, reconnect_delay=0.01)
        async with client:
            assert not client.is_connected

            await wait_until(lambda: client.is_connected)
            assert len(factory.transports) == 2

    @pytest.mark.asyncio
    async def test_connect_raises_on_failure(self):
        factory = MockTransportFactory(fail_open=1)
        client = create_test_client(factory, reconnect_delay=10)
        try:
            with pytest.raises(ConnectionError):
                await client.connect()
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_no_reconnect_after_close(self, client, factory):
        async with client:
            pass

        await asyncio.sleep(0.1)
        assert len(factory.transports) == 1


class TestFactories:
    """Tests for factory functions."""

    def test_create_client_uses_websocket(self):
        client = create_client("mc.example.org", 20059, "admin", "secret", "pepper")

        assert client.url == "ws://mc.example.org:20059/api/2/websocket"
        assert isinstance(client.supervisor._transport_factory(), WebSocketTransport)

    def test_create_client_passes_options(self):
        client = create_client("h", 1, "u", "p", command_timeout=3.0, reconnect_delay=1.0)

        assert client.correlator.timeout == 3.0
        assert client.supervisor.reconnect_delay == 1.0

    def test_create_test_client_defaults(self):
        client = create_test_client()

        assert client.config.username == "u"
        assert client.state == ConnectionState.DISCONNECTED

    def test_config_switches_reach_components(self):
        config = RconConfig(surface_remote_errors=False)
        client = RconClient(config, transport_factory=MockTransportFactory())

        assert client.correlator.surface_remote_errors is False
