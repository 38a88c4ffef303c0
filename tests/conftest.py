"""Pytest configuration and shared fixtures."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from jsonapi_rcon import MockTransportFactory, RconClient, create_test_client


@pytest.fixture
def factory() -> MockTransportFactory:
    """Mock transport factory recording every transport it creates."""
    return MockTransportFactory()


@pytest.fixture
def pushes() -> list[Any]:
    """Payloads received by the test client's push listener."""
    return []


@pytest.fixture
def client(factory: MockTransportFactory, pushes: list[Any]) -> RconClient:
    """Client on mock transports with short timeouts."""
    return create_test_client(
        factory,
        listener=pushes.append,
        command_timeout=0.2,
        reconnect_delay=0.05,
    )


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Poll a predicate until it holds or the timeout expires."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.005)

    return _wait
