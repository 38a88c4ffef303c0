"""JSONAPI Rcon - resilient client for the JSONAPI v2 socket API.

Provides:
- RconClient: tagged calls and push subscriptions over one connection
- ConnectionSupervisor: idempotent connect with fixed-delay reconnect
- Transports: WebSocket for real servers, mock for testing
"""

from .client import RconClient, create_client, create_test_client
from .config import RconConfig
from .correlator import CommandCorrelator, PendingCommand
from .errors import (
    CommandTimeoutError,
    RconConnectionError,
    RconError,
    RemoteCommandError,
)
from .keys import Credentials, derive_key
from .protocol import (
    CommandEnvelope,
    CommandResponse,
    PushMessage,
    SubscriptionEnvelope,
    websocket_url,
)
from .router import MessageRouter
from .subscriptions import PushListener, Subscription, SubscriptionRegistry
from .supervisor import ConnectionState, ConnectionSupervisor
from .transport import (
    FrameTransport,
    MockTransport,
    MockTransportFactory,
    WebSocketTransport,
    create_mock_transport_factory,
    create_websocket_transport_factory,
)

__all__ = [
    # Client
    "RconClient",
    "RconConfig",
    "create_client",
    "create_test_client",
    # Core
    "ConnectionSupervisor",
    "ConnectionState",
    "CommandCorrelator",
    "PendingCommand",
    "SubscriptionRegistry",
    "Subscription",
    "PushListener",
    "MessageRouter",
    # Keys
    "Credentials",
    "derive_key",
    # Protocol
    "CommandEnvelope",
    "SubscriptionEnvelope",
    "CommandResponse",
    "PushMessage",
    "websocket_url",
    # Transports
    "FrameTransport",
    "WebSocketTransport",
    "MockTransport",
    "MockTransportFactory",
    "create_websocket_transport_factory",
    "create_mock_transport_factory",
    # Errors
    "RconError",
    "RconConnectionError",
    "CommandTimeoutError",
    "RemoteCommandError",
]
