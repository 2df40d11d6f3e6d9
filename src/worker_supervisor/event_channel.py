"""Typed fan-out channel for lifecycle events.

Publishers own an :class:`EventChannel`; every interested consumer calls
:meth:`EventChannel.subscribe` and receives its own unbounded queue, so a slow
consumer never blocks the publisher and never misses an event.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """One consumer's view of a channel. Iterate it, or call :meth:`get`."""

    def __init__(self, channel: "EventChannel[T]") -> None:
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self._close_requested = False

    def _deliver(self, item: object) -> None:
        self._queue.put_nowait(item)

    async def get(self) -> Optional[T]:
        """Wait for the next event; ``None`` once the subscription is closed and drained."""
        if self.closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            self.closed = True
            return None
        return item  # type: ignore[return-value]

    def drain(self) -> list[T]:
        """Return every event already queued without waiting."""
        items: list[T] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                self.closed = True
                break
            items.append(item)
        return items

    def close(self) -> None:
        if self._close_requested:
            return
        self._close_requested = True
        self._channel._unsubscribe(self)
        self._deliver(_CLOSED)

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class EventChannel(Generic[T]):
    """Broadcasts each published event to every live subscription."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: list[Subscription[T]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription[T]:
        subscription: Subscription[T] = Subscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: T) -> None:
        for subscription in list(self._subscriptions):
            subscription._deliver(event)
        logger.debug("%s published %r to %d subscriber(s)", self.name, event, len(self._subscriptions))

    def close(self) -> None:
        """End every subscription; consumers see the end of iteration."""
        for subscription in list(self._subscriptions):
            subscription.close()

    def _unsubscribe(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


__all__ = ["EventChannel", "Subscription"]
