"""Client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .correlator import DEFAULT_COMMAND_TIMEOUT
from .keys import Credentials
from .protocol import websocket_url
from .supervisor import DEFAULT_RECONNECT_DELAY

DEFAULT_PORT = 20059
ENV_PREFIX = "JSONAPI_RCON_"


@dataclass
class RconConfig:
    """Configuration for RconClient.

    The three behaviour switches default to the corrected behaviour;
    turn them off to get the plain protocol semantics:
    - surface_remote_errors: "error" responses raise RemoteCommandError
      instead of resolving with None
    - fail_pending_on_close: pending calls fail as soon as the connection
      drops instead of waiting out their timeout
    - resubscribe_on_reconnect: active subscriptions are re-sent after a
      reconnect
    """

    host: str = "localhost"
    port: int = DEFAULT_PORT
    username: str = "admin"
    password: str = ""
    salt: str = ""

    # Timing
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY

    # Behaviour
    surface_remote_errors: bool = True
    fail_pending_on_close: bool = True
    resubscribe_on_reconnect: bool = True

    # WebSocket settings
    ping_interval: float | None = 20.0
    open_timeout: float | None = 10.0

    @property
    def url(self) -> str:
        return websocket_url(self.host, self.port)

    @property
    def credentials(self) -> Credentials:
        return Credentials(username=self.username, password=self.password, salt=self.salt)

    def __repr__(self) -> str:
        return f"RconConfig(host={self.host!r}, port={self.port}, username={self.username!r})"

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **overrides: object) -> RconConfig:
        """Build a config from environment variables.

        Reads {prefix}HOST, PORT, USERNAME, PASSWORD, SALT,
        COMMAND_TIMEOUT and RECONNECT_DELAY. Keyword overrides win over
        the environment.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ
        values: dict[str, object] = {}

        for name in ("host", "username", "password", "salt"):
            value = env.get(f"{prefix}{name.upper()}")
            if value is not None:
                values[name] = value

        if f"{prefix}PORT" in env:
            values["port"] = int(env[f"{prefix}PORT"])
        if f"{prefix}COMMAND_TIMEOUT" in env:
            values["command_timeout"] = float(env[f"{prefix}COMMAND_TIMEOUT"])
        if f"{prefix}RECONNECT_DELAY" in env:
            values["reconnect_delay"] = float(env[f"{prefix}RECONNECT_DELAY"])

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]
