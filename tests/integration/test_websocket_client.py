"""Integration tests against a local WebSocket server.

The server is a minimal stand-in for a JSONAPI endpoint: it answers calls
by echoing their arguments and answers subscriptions with one push.
Real sockets, real websockets library, no mocks.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from websockets.asyncio.server import ServerConnection, serve

from jsonapi_rcon import RconConnectionError, create_client
from jsonapi_rcon.keys import derive_key
from jsonapi_rcon.protocol import WEBSOCKET_PATH, parse_request_frame

pytestmark = pytest.mark.integration


class StubJsonApiServer:
    """Answers calls and subscriptions; verifies keys."""

    def __init__(self) -> None:
        self.connections: list[ServerConnection] = []
        self.paths: list[str] = []

    async def handler(self, websocket: ServerConnection) -> None:
        self.connections.append(websocket)
        self.paths.append(websocket.request.path)
        async for message in websocket:
            kind, envelopes = parse_request_frame(message)
            envelope = envelopes[0]
            name = envelope["name"]
            expected_key = derive_key("u", name, "p", "s")

            if envelope["key"] != expected_key:
                reply: Any = [
                    {"result": "error", "source": name, "tag": envelope["tag"], "error": "bad key"}
                ]
            elif kind == "call":
                reply = [
                    {
                        "result": "success",
                        "source": name,
                        "tag": envelope["tag"],
                        "success": envelope["arguments"],
                    }
                ]
            else:
                reply = {
                    "result": "success",
                    "source": name,
                    "tag": envelope["tag"],
                    "success": {"player": "Alice", "message": "hello"},
                }
            await websocket.send(json.dumps(reply))


@pytest.mark.asyncio
async def test_call_and_subscribe_round_trip():
    stub = StubJsonApiServer()
    async with serve(stub.handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]
        pushes: list[Any] = []
        client = create_client("127.0.0.1", port, "u", "p", "s", listener=pushes.append)

        async with client:
            assert await client.call("echo", ["a", 1]) == ["a", 1]

            await client.subscribe("chat")
            async with asyncio.timeout(1):
                while not pushes:
                    await asyncio.sleep(0.01)

        assert pushes == [{"player": "Alice", "message": "hello"}]
        assert stub.paths == [WEBSOCKET_PATH]


@pytest.mark.asyncio
async def test_reconnects_after_server_drops_connection():
    stub = StubJsonApiServer()
    async with serve(stub.handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]
        client = create_client("127.0.0.1", port, "u", "p", "s", reconnect_delay=0.05)

        async with client:
            assert await client.call("first") == []

            await stub.connections[0].close()
            async with asyncio.timeout(2):
                while len(stub.connections) < 2 or not client.is_connected:
                    await asyncio.sleep(0.01)

            assert await client.call("second", [True]) == [True]


@pytest.mark.asyncio
async def test_call_without_server_raises_connection_error():
    async with serve(StubJsonApiServer().handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]

    client = create_client("127.0.0.1", port, "u", "p", "s", reconnect_delay=10)
    try:
        with pytest.raises(RconConnectionError):
            await client.call("echo")
    finally:
        await client.close()
