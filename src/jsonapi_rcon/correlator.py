"""Request/response correlation for remote calls.

Each call is sent with a fresh tag and parked as a PendingCommand until
the first response carrying that tag arrives or its timeout elapses.
Resolution is at-most-once: whichever happens first removes the entry,
and anything arriving later for that tag is dropped by the router.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .errors import CommandTimeoutError, RconConnectionError, RemoteCommandError
from .keys import Credentials
from .protocol import CommandEnvelope, CommandResponse, new_tag
from .supervisor import ConnectionSupervisor

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 1.0


@dataclass
class PendingCommand:
    """A call waiting for its response."""

    tag: str
    method: str
    future: asyncio.Future[Any]
    deadline: float = field(default=0.0)


class CommandCorrelator:
    """Issues tagged calls and matches responses to them.

    Args:
        supervisor: Connection used to send commands
        credentials: Used to sign every command
        timeout: Seconds to wait for a matching response
        surface_remote_errors: Raise RemoteCommandError for "error"
            responses. When False, such a response resolves the call with
            its (absent) success payload, i.e. None.
        tag_factory: Produces correlation tags
    """

    def __init__(
        self,
        supervisor: ConnectionSupervisor,
        credentials: Credentials,
        *,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        surface_remote_errors: bool = True,
        tag_factory: Callable[[], str] = new_tag,
    ) -> None:
        self._supervisor = supervisor
        self._credentials = credentials
        self.timeout = timeout
        self.surface_remote_errors = surface_remote_errors
        self._tag_factory = tag_factory
        self._pending: dict[str, PendingCommand] = {}

    @property
    def pending_tags(self) -> list[str]:
        return list(self._pending)

    def has_pending(self, tag: str) -> bool:
        return tag in self._pending

    async def call(self, method: str, arguments: list[Any] | None = None) -> Any:
        """Call a remote method and return its success payload.

        Args:
            method: Remote method name, e.g. "players.online.names"
            arguments: Positional arguments for the method

        Raises:
            RconConnectionError: If the connection cannot be established or
                is lost before the response arrives
            CommandTimeoutError: If no response arrives in time
            RemoteCommandError: If the server reports an error
        """
        try:
            await self._supervisor.connect()
        except RconConnectionError:
            raise
        except Exception as e:
            raise RconConnectionError(f"Failed to connect: {e}") from e

        tag = self._tag_factory()
        while tag in self._pending:
            tag = self._tag_factory()

        envelope = CommandEnvelope.create(self._credentials, method, arguments, tag=tag)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        self._pending[tag] = PendingCommand(
            tag=tag,
            method=method,
            future=future,
            deadline=loop.time() + self.timeout,
        )

        try:
            await self._supervisor.send(envelope.to_frame())
            logger.debug(f"Sent command {method} (tag={tag})")
            return await asyncio.wait_for(future, timeout=self.timeout)
        except TimeoutError:
            logger.debug(f"Command {method} timed out (tag={tag})")
            raise CommandTimeoutError(method, tag, self.timeout) from None
        finally:
            self._pending.pop(tag, None)

    def resolve(self, response: CommandResponse) -> bool:
        """Settle the pending command matching `response.tag`.

        Returns:
            True if a pending command was settled, False if the tag is unknown
        """
        pending = self._pending.pop(response.tag, None)
        if pending is None or pending.future.done():
            return False

        if response.is_success or not self.surface_remote_errors:
            pending.future.set_result(response.success)
        else:
            pending.future.set_exception(
                RemoteCommandError(response.source or pending.method, response.error, response.tag)
            )
        return True

    def fail_all(self, exc: Exception) -> int:
        """Fail every pending command with `exc`. Returns how many were failed."""
        pending = list(self._pending.values())
        self._pending.clear()

        count = 0
        for command in pending:
            if not command.future.done():
                command.future.set_exception(exc)
                count += 1
        if count:
            logger.info(f"Failed {count} pending command(s): {exc}")
        return count
