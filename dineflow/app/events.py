# events.py

"""Order lifecycle event broadcasting.

Two interchangeable broadcasters are provided. :class:`EventBus` fans events
out to in-process :class:`asyncio.Queue` subscribers and suits a single API
worker. :class:`RedisBroadcaster` publishes to a Redis channel so that every
worker's dashboard stream sees every event. Neither keeps history: a
subscriber only receives events published while it is connected.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Dict, List, Protocol

NEW_ORDER = "new-order"
ORDER_STATUS_UPDATED = "order-status-updated"

Message = Dict[str, Any]

logger = logging.getLogger("orders.events")


class Broadcaster(Protocol):
    """Capability the order engine publishes through."""

    async def publish(self, name: str, payload: Dict[str, Any]) -> None:
        """Deliver ``payload`` as event ``name`` to current subscribers."""

    def listen(self) -> AsyncContextManager[AsyncIterator[Message | None]]:
        """Subscribe on enter and yield ``{"event", "data"}`` messages.

        ``None`` is yielded whenever the channel stays idle for the keepalive
        interval.
        """


class EventBus:
    """Dispatch events to subscribers via bounded :class:`asyncio.Queue` instances.

    A subscriber whose queue is full misses the event; publishing never waits
    on a slow consumer.
    """

    def __init__(self, maxsize: int = 100, keepalive: float = 15.0) -> None:
        self._subs: List[asyncio.Queue] = []
        self.maxsize = maxsize
        self.keepalive = keepalive

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)

    def subscribe(self) -> asyncio.Queue:
        """Register a new subscriber and return its queue."""

        queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._subs.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subs:
            self._subs.remove(queue)

    async def publish(self, name: str, payload: Dict[str, Any]) -> None:
        """Broadcast ``payload`` to all subscribers."""

        message = {"event": name, "data": payload}
        for queue in list(self._subs):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("subscriber queue full; dropping %s", name)

    async def _drain(self, queue: asyncio.Queue) -> AsyncIterator[Message | None]:
        while True:
            try:
                yield await asyncio.wait_for(queue.get(), self.keepalive)
            except asyncio.TimeoutError:
                yield None

    @asynccontextmanager
    async def listen(self) -> AsyncIterator[AsyncIterator[Message | None]]:
        queue = self.subscribe()
        try:
            yield self._drain(queue)
        finally:
            self.unsubscribe(queue)


class RedisBroadcaster:
    """Publish events as JSON on a Redis pub/sub channel."""

    def __init__(self, redis, channel: str = "rt:orders", keepalive: float = 15.0) -> None:
        self.redis = redis
        self.channel = channel
        self.keepalive = keepalive

    async def publish(self, name: str, payload: Dict[str, Any]) -> None:
        await self.redis.publish(
            self.channel, json.dumps({"event": name, "data": payload})
        )

    async def _drain(self, pubsub) -> AsyncIterator[Message | None]:
        while True:
            message = await pubsub.get_message(
                ignore_subscribe_messages=True, timeout=self.keepalive
            )
            if message is None:
                yield None
                continue
            data = message["data"]
            if isinstance(data, bytes):
                data = data.decode()
            try:
                yield json.loads(data)
            except ValueError:
                logger.warning("ignoring malformed message on %s", self.channel)

    @asynccontextmanager
    async def listen(self) -> AsyncIterator[AsyncIterator[Message | None]]:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            yield self._drain(pubsub)
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
