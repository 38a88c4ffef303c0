"""Push subscriptions.

A subscription asks the server to stream messages from a source (chat,
console, connections, ...). Every push carries the tag of the
subscription it belongs to; pushes for active tags are forwarded to the
single listener the client was created with.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import RconConnectionError
from .keys import Credentials
from .protocol import PushMessage, SubscriptionEnvelope, new_tag
from .supervisor import ConnectionSupervisor

logger = logging.getLogger(__name__)

PushListener = Callable[[Any], None]


@dataclass
class Subscription:
    """An active push subscription."""

    tag: str
    source: str
    show_previous: bool = False
    active: bool = True


class SubscriptionRegistry:
    """Registers subscriptions and forwards their pushes.

    Args:
        supervisor: Connection used to send subscription requests
        credentials: Used to sign every subscription
        listener: Receives the `success` payload of every matching push
        tag_factory: Produces correlation tags
    """

    def __init__(
        self,
        supervisor: ConnectionSupervisor,
        credentials: Credentials,
        listener: PushListener,
        *,
        tag_factory: Callable[[], str] = new_tag,
    ) -> None:
        self._supervisor = supervisor
        self._credentials = credentials
        self._listener = listener
        self._tag_factory = tag_factory
        self._subscriptions: dict[str, Subscription] = {}
        self._tasks: set[asyncio.Task[Subscription | None]] = set()

    @property
    def subscriptions(self) -> list[Subscription]:
        """Active subscriptions, oldest first."""
        return [s for s in self._subscriptions.values() if s.active]

    def is_active(self, tag: str) -> bool:
        subscription = self._subscriptions.get(tag)
        return subscription is not None and subscription.active

    def subscribe(self, source: str, show_previous: bool = False) -> asyncio.Task[Subscription | None]:
        """Subscribe without waiting.

        Connection failures are logged, not raised. The returned task
        resolves to the Subscription, or None if it could not be sent;
        callers may ignore it.
        """
        task = asyncio.create_task(self._subscribe(source, show_previous))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _subscribe(self, source: str, show_previous: bool) -> Subscription | None:
        try:
            return await self.register(source, show_previous)
        except RconConnectionError as e:
            logger.warning(f"Subscription to {source} not sent: {e}")
            return None

    async def register(self, source: str, show_previous: bool = False) -> Subscription:
        """Subscribe to `source` and wait until the request is sent.

        Raises:
            RconConnectionError: If the connection cannot be established
        """
        await self._supervisor.connect()

        tag = self._tag_factory()
        while tag in self._subscriptions:
            tag = self._tag_factory()

        subscription = Subscription(tag=tag, source=source, show_previous=show_previous)
        self._subscriptions[tag] = subscription
        try:
            await self._send(subscription)
        except RconConnectionError:
            self._subscriptions.pop(tag, None)
            raise

        logger.info(f"Subscribed to {source} (tag={tag})")
        return subscription

    def deactivate(self, tag: str) -> bool:
        """Stop forwarding pushes for `tag`. The server is not notified."""
        subscription = self._subscriptions.pop(tag, None)
        if subscription is None:
            return False
        subscription.active = False
        return True

    async def resubscribe(self) -> int:
        """Re-send every active subscription with its existing tag.

        Returns:
            Number of subscriptions re-sent
        """
        count = 0
        for subscription in self.subscriptions:
            try:
                await self._send(subscription)
            except RconConnectionError as e:
                logger.warning(f"Resubscribe to {subscription.source} failed: {e}")
                break
            count += 1
        if count:
            logger.info(f"Resubscribed {count} subscription(s)")
        return count

    def dispatch(self, push: PushMessage) -> bool:
        """Forward a push to the listener if its tag is active.

        Returns:
            True if the push belonged to an active subscription
        """
        if not self.is_active(push.tag):
            return False

        if not push.is_success:
            logger.warning(f"Error push from {push.source} (tag={push.tag}): {push.error}")
            return True

        try:
            self._listener(push.success)
        except Exception as e:
            logger.exception(f"Push listener failed: {e}")
        return True

    async def _send(self, subscription: Subscription) -> None:
        envelope = SubscriptionEnvelope.create(
            self._credentials,
            subscription.source,
            subscription.show_previous,
            tag=subscription.tag,
        )
        await self._supervisor.send(envelope.to_frame())
