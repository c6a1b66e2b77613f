"""
Realtime Channel Factory

Returns the in-process or Redis channel based on REALTIME_BACKEND.
"""

import logging
from functools import lru_cache

from orderdesk.core.config import RealtimeBackend, get_settings
from orderdesk.services.realtime.base import (
    BaseRealtimeChannel,
    OrderStatusEvent,
    order_topic,
)
from orderdesk.services.realtime.memory import InMemoryRealtimeChannel

logger = logging.getLogger(__name__)


@lru_cache()
def get_realtime_channel() -> BaseRealtimeChannel:
    """Get the configured realtime channel."""
    settings = get_settings()

    if settings.realtime_backend == RealtimeBackend.REDIS:
        from orderdesk.services.realtime.redis_channel import RedisRealtimeChannel

        logger.info("Realtime Channel: Using RedisRealtimeChannel")
        return RedisRealtimeChannel()

    logger.info("Realtime Channel: Using InMemoryRealtimeChannel")
    return InMemoryRealtimeChannel()


def reset_realtime_channel() -> None:
    """Clear the cached channel instance."""
    get_realtime_channel.cache_clear()


__all__ = [
    "get_realtime_channel",
    "reset_realtime_channel",
    "BaseRealtimeChannel",
    "InMemoryRealtimeChannel",
    "OrderStatusEvent",
    "order_topic",
]
