"""In-process fan-out of serialized events to WebSocket subscribers."""
from __future__ import annotations

import asyncio
from typing import Dict, Optional


class Subscription:
    """Receive handle returned by :meth:`BroadcastHub.subscribe`."""

    def __init__(self, hub: "BroadcastHub", token: int, capacity: int) -> None:
        self._hub = hub
        self._token = token
        self._queue: "asyncio.Queue[str]" = asyncio.Queue(capacity)
        self.dropped = 0

    @property
    def token(self) -> int:
        return self._token

    def _offer(self, message: str) -> None:
        while True:
            try:
                self._queue.put_nowait(message)
                return
            except asyncio.QueueFull:
                # Lagging subscriber: discard its oldest unread message.
                try:
                    self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
                self.dropped += 1

    async def get(self) -> str:
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self._hub._unsubscribe(self._token)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class BroadcastHub:
    """Lossy one-to-many channel; publishers are never slowed by subscribers."""

    def __init__(self, capacity: int = 64) -> None:
        self._capacity = max(1, int(capacity))
        self._subscribers: Dict[int, Subscription] = {}
        self._next_token = 1

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        token = self._next_token
        self._next_token += 1
        subscription = Subscription(self, token, self._capacity)
        self._subscribers[token] = subscription
        return subscription

    def _unsubscribe(self, token: int) -> Optional[Subscription]:
        return self._subscribers.pop(token, None)

    def publish(self, message: str) -> int:
        subscribers = list(self._subscribers.values())
        for subscription in subscribers:
            subscription._offer(message)
        return len(subscribers)


__all__ = ["BroadcastHub", "Subscription"]
