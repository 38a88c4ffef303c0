"""Inbound frame routing."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from .correlator import CommandCorrelator
from .protocol import CommandResponse, PushMessage
from .subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)


class MessageRouter:
    """Sends each inbound frame to the correlator or the registry.

    A JSON array is a batch of command responses; a JSON object is a
    single subscription push. Frames for unknown tags are dropped: the
    command may have timed out already or belong to an earlier connection.
    """

    def __init__(self, correlator: CommandCorrelator, registry: SubscriptionRegistry) -> None:
        self._correlator = correlator
        self._registry = registry

    def route(self, raw_frame: str) -> None:
        try:
            data = json.loads(raw_frame)
        except json.JSONDecodeError as e:
            logger.warning(f"Dropping malformed frame: {e} (frame: {raw_frame[:50]})")
            return

        if isinstance(data, list):
            self._route_batch(data)
        elif isinstance(data, dict):
            self._route_push(data)
        else:
            logger.warning(f"Dropping unexpected frame: {raw_frame[:50]}")

    def _route_batch(self, items: list) -> None:
        for item in items:
            try:
                response = CommandResponse.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping invalid response: {e}")
                continue

            if not self._correlator.resolve(response):
                logger.debug(f"Dropping response for unknown tag {response.tag}")

    def _route_push(self, data: dict) -> None:
        try:
            push = PushMessage.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Skipping invalid push: {e}")
            return

        if not self._registry.dispatch(push):
            logger.debug(f"Dropping push for unknown tag {push.tag}")
