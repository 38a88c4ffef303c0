"""Errors raised by the client."""

from __future__ import annotations

from typing import Any


class RconError(Exception):
    """Base class for client errors."""

    pass


class RconConnectionError(RconError, ConnectionError):
    """Transport never opened, or closed before the operation completed."""

    pass


class CommandTimeoutError(RconError, TimeoutError):
    """No matching response arrived within the command timeout."""

    def __init__(self, method: str, tag: str, timeout: float) -> None:
        super().__init__(f"Command {method!r} timed out after {timeout}s (tag={tag})")
        self.method = method
        self.tag = tag
        self.timeout = timeout


class RemoteCommandError(RconError, RuntimeError):
    """The server answered a command with result "error"."""

    def __init__(self, source: str, error: Any, tag: str) -> None:
        super().__init__(f"Remote error from {source!r}: {error}")
        self.source = source
        self.error = error
        self.tag = tag
