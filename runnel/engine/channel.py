"""Broadcast channel — the subscribe/push primitive behind each intake.

The engine only relies on the ``Channel`` protocol, so a host can swap in
a channel backed by another event system without changing dispatch
behaviour.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], Any]


@runtime_checkable
class Channel(Protocol):
    """Protocol for broadcast channels.

    ``push`` delivers the item to every subscriber in subscription order.
    """

    def subscribe(self, subscriber: Subscriber) -> int:
        ...

    def push(self, item: Any) -> None:
        ...


class BroadcastChannel:
    """In-process broadcast channel.

    Subscription changes are guarded by a lock; ``push`` iterates over a
    snapshot so subscribers may be added or removed concurrently.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> int:
        """Add *subscriber* and return its subscription id."""
        with self._lock:
            subscription_id = next(self._ids)
            self._subscribers[subscription_id] = subscriber
        return subscription_id

    def unsubscribe(self, subscription_id: int) -> None:
        """Remove a subscription; unknown ids are ignored."""
        with self._lock:
            self._subscribers.pop(subscription_id, None)

    def push(self, item: Any) -> None:
        with self._lock:
            subscribers = list(self._subscribers.values())
        for subscriber in subscribers:
            subscriber(item)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def __repr__(self) -> str:
        return f"BroadcastChannel(name={self.name!r}, subscribers={self.subscriber_count})"
