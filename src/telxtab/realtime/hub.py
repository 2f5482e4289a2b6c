"""Realtime fan-out of row changes to SSE subscribers.

Three channel families exist:
- ``messages:{low}:{high}``: direct messages between two users
- ``chat:{chat_id}``: turns of an AI practice chat
- ``notifications:{user_id}``: a user's notifications

Every subscriber owns an asyncio queue; publishing puts the event on the
queue of each current subscriber of the channel. ``None`` on a queue
ends the stream.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator

import structlog

logger = structlog.get_logger(__name__)

KEEPALIVE_SECONDS = 30.0
QUEUE_MAXSIZE = 256

_event_ids = itertools.count(1)


def chat_channel(chat_id: str) -> str:
    return f"chat:{chat_id}"


def notifications_channel(user_id: str) -> str:
    return f"notifications:{user_id}"


@dataclass
class RealtimeEvent:
    """A row change pushed to subscribers."""

    event: str
    table: str
    record: dict[str, Any]
    id: int = field(default_factory=lambda: next(_event_ids))

    def to_sse(self) -> str:
        """Format as a Server-Sent Events frame."""
        payload = {"id": self.id, "table": self.table, "record": self.record}
        return f"id: {self.id}\nevent: {self.event}\ndata: {json.dumps(payload)}\n\n"


@dataclass
class Subscription:
    """One listener on one channel."""

    channel: str
    queue: asyncio.Queue[RealtimeEvent | None] = field(
        default_factory=lambda: asyncio.Queue(maxsize=QUEUE_MAXSIZE)
    )
    dropped: int = 0

    def offer(self, item: RealtimeEvent | None) -> None:
        """Queue an item, discarding the oldest one when full."""
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(item)


class ChannelHub:
    """In-process channel registry.

    Subscriptions are grouped by channel name; a channel disappears when
    its last subscriber leaves.
    """

    def __init__(self):
        self._channels: dict[str, list[Subscription]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, channel: str) -> Subscription:
        subscription = Subscription(channel=channel)
        async with self._lock:
            self._channels.setdefault(channel, []).append(subscription)
        logger.debug("realtime.subscribed", channel=channel)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self._lock:
            subscribers = self._channels.get(subscription.channel, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._channels.pop(subscription.channel, None)
        logger.debug("realtime.unsubscribed", channel=subscription.channel)

    async def publish(self, channel: str, event: RealtimeEvent) -> int:
        """Deliver an event to every current subscriber.

        Returns:
            Number of subscribers the event was queued for.
        """
        async with self._lock:
            subscribers = list(self._channels.get(channel, []))

        for subscription in subscribers:
            subscription.offer(event)

        logger.debug(
            "realtime.published",
            channel=channel,
            event_name=event.event,
            event_id=event.id,
            delivered=len(subscribers),
        )
        return len(subscribers)

    async def close_channel(self, channel: str) -> int:
        """End the stream of every subscriber of a channel."""
        async with self._lock:
            subscribers = self._channels.pop(channel, [])

        for subscription in subscribers:
            subscription.offer(None)
        return len(subscribers)

    async def subscriber_count(self, channel: str) -> int:
        async with self._lock:
            return len(self._channels.get(channel, []))


async def sse_stream(
    hub: ChannelHub,
    subscription: Subscription,
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncGenerator[str, None]:
    """Yield SSE frames for a subscription until the channel closes.

    The subscription is removed when the generator finishes, including
    when the client disconnects.
    """
    try:
        yield f"event: subscribed\ndata: {json.dumps({'channel': subscription.channel})}\n\n"
        while True:
            try:
                event = await asyncio.wait_for(subscription.queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield "event: keepalive\ndata: ping\n\n"
                continue

            if event is None:
                yield "event: close\ndata: Channel closed\n\n"
                return

            yield event.to_sse()
    finally:
        await hub.unsubscribe(subscription)


# Global hub instance
_hub: ChannelHub | None = None


def get_hub() -> ChannelHub:
    """Get the global channel hub."""
    global _hub
    if _hub is None:
        _hub = ChannelHub()
    return _hub


def reset_hub() -> None:
    """Reset the channel hub (for testing)."""
    global _hub
    _hub = None
