"""
In-Process Realtime Channel

Delivers events to subscribers living in the same process. Enough for
a single app instance and for tests; use the Redis channel when several
instances serve dashboard sockets.
"""

import itertools
import logging
from typing import Any

from orderdesk.services.realtime.base import BaseRealtimeChannel, EventHandler, Unsubscribe

logger = logging.getLogger(__name__)


class InMemoryRealtimeChannel(BaseRealtimeChannel):
    """Dictionary of topic -> handlers."""

    def __init__(self):
        self._subscribers: dict[str, dict[int, EventHandler]] = {}
        self._tokens = itertools.count(1)

    @property
    def provider_name(self) -> str:
        return "memory"

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, {}))

    async def publish(self, topic: str, event: dict[str, Any]) -> int:
        handlers = list(self._subscribers.get(topic, {}).values())
        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                # A broken viewer must not starve the others
                logger.warning(f"Subscriber on {topic} failed: {e}")
        return len(handlers)

    async def subscribe(self, topic: str, handler: EventHandler) -> Unsubscribe:
        token = next(self._tokens)
        self._subscribers.setdefault(topic, {})[token] = handler
        logger.debug(f"Subscriber {token} joined {topic}")

        async def unsubscribe() -> None:
            handlers = self._subscribers.get(topic)
            if handlers is None:
                return
            handlers.pop(token, None)
            if not handlers:
                del self._subscribers[topic]
            logger.debug(f"Subscriber {token} left {topic}")

        return unsubscribe

    async def health_check(self) -> bool:
        return True
