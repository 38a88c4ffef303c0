"""Wire definitions for the JSONAPI v2 socket protocol.

Outbound frames are text: a request path followed by a JSON array holding
one envelope, e.g.

    /api/2/call?json=[{"name": "getPlayers", "username": "u",
                       "key": "...", "arguments": [], "tag": "..."}]

Inbound frames are JSON. An array is a batch of command responses; a
single object is a push for an active subscription. Both carry the `tag`
of the request they answer.
"""

from __future__ import annotations

import json
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .keys import Credentials

WEBSOCKET_PATH = "/api/2/websocket"
CALL_PREFIX = "/api/2/call?json="
SUBSCRIBE_PREFIX = "/api/2/subscribe?json="


def new_tag() -> str:
    """Generate a correlation tag."""
    return uuid.uuid4().hex


def websocket_url(host: str, port: int) -> str:
    """Endpoint of the persistent socket."""
    return f"ws://{host}:{port}{WEBSOCKET_PATH}"


def _dumps(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"))


class ResultType(str, Enum):
    """Value of the `result` field on responses and pushes."""

    SUCCESS = "success"
    ERROR = "error"


class CommandEnvelope(BaseModel):
    """A call to a remote method."""

    name: str
    username: str
    key: str
    arguments: list[Any] = Field(default_factory=list)
    tag: str = Field(default_factory=new_tag)

    @classmethod
    def create(
        cls,
        credentials: Credentials,
        method: str,
        arguments: list[Any] | None = None,
        tag: str | None = None,
    ) -> CommandEnvelope:
        """Build a signed command for `method`."""
        return cls(
            name=method,
            username=credentials.username,
            key=credentials.key_for(method),
            arguments=list(arguments or []),
            tag=tag or new_tag(),
        )

    def to_frame(self) -> str:
        return CALL_PREFIX + _dumps([self.model_dump()])


class SubscriptionEnvelope(BaseModel):
    """A request to stream pushes from a source."""

    name: str
    username: str
    key: str
    show_previous: bool = False
    tag: str = Field(default_factory=new_tag)

    @classmethod
    def create(
        cls,
        credentials: Credentials,
        source: str,
        show_previous: bool = False,
        tag: str | None = None,
    ) -> SubscriptionEnvelope:
        """Build a signed subscription for `source`."""
        return cls(
            name=source,
            username=credentials.username,
            key=credentials.key_for(source),
            show_previous=show_previous,
            tag=tag or new_tag(),
        )

    def to_frame(self) -> str:
        return SUBSCRIBE_PREFIX + _dumps([self.model_dump()])


class CommandResponse(BaseModel):
    """One element of an inbound batch."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    result: str
    tag: str
    source: str = ""
    success: Any = None
    error: Any = None

    @property
    def is_success(self) -> bool:
        return self.result == ResultType.SUCCESS.value


class PushMessage(BaseModel):
    """A single unsolicited message for a subscription."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    result: str
    tag: str
    source: str = ""
    success: Any = None
    error: Any = None

    @property
    def is_success(self) -> bool:
        return self.result == ResultType.SUCCESS.value


def parse_request_frame(frame: str) -> tuple[str, list[dict[str, Any]]]:
    """Split an outbound frame into its kind and envelopes.

    Returns:
        ("call" | "subscribe", list of envelope dicts)

    Raises:
        ValueError: If the frame has no known prefix or its body is not a JSON array
    """
    for kind, prefix in (("call", CALL_PREFIX), ("subscribe", SUBSCRIBE_PREFIX)):
        if frame.startswith(prefix):
            body = json.loads(frame[len(prefix) :])
            if not isinstance(body, list):
                raise ValueError(f"Expected a JSON array after {prefix!r}")
            return kind, body
    raise ValueError(f"Unknown request frame: {frame[:40]}")
