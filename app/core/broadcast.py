"""
In-process publish/subscribe bus for real-time events.

Channel naming follows `private-discussion.<id>`; the only event published
is `message.sent`. Delivery is fire-and-forget: a subscriber that raises is
logged and skipped, the publisher never sees the error.
"""
import uuid
from collections import defaultdict
from typing import Any, Callable, Dict, List

from loguru import logger

MESSAGE_SENT_EVENT = "message.sent"
DISCUSSION_CHANNEL_PREFIX = "private-discussion."

Subscriber = Callable[[str, Dict[str, Any]], None]


def discussion_channel(discussion_id: uuid.UUID) -> str:
    return f"{DISCUSSION_CHANNEL_PREFIX}{discussion_id}"


class Broadcaster:
    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)

    def subscribe(self, channel: str, callback: Subscriber) -> None:
        self._subscribers[channel].append(callback)

    def unsubscribe(self, channel: str, callback: Subscriber) -> None:
        if callback in self._subscribers.get(channel, []):
            self._subscribers[channel].remove(callback)
        if channel in self._subscribers and not self._subscribers[channel]:
            del self._subscribers[channel]

    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> int:
        """Returns the number of subscribers that received the event."""
        delivered = 0
        for callback in list(self._subscribers.get(channel, [])):
            try:
                callback(event, payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Broadcast of '{event}' on {channel} failed: {e}")
        logger.info(
            f"Broadcast '{event}' on {channel} -> {delivered} subscriber(s)")
        return delivered


broadcaster = Broadcaster()


def get_broadcaster() -> Broadcaster:
    return broadcaster
