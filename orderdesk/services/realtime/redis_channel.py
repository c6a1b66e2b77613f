"""
Redis Realtime Channel

Redis pub/sub so that a status change handled by one app instance
reaches dashboard sockets held by any other instance.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from orderdesk.core.config import get_settings
from orderdesk.services.realtime.base import BaseRealtimeChannel, EventHandler, Unsubscribe

logger = logging.getLogger(__name__)


class RedisRealtimeChannel(BaseRealtimeChannel):
    """Publish/subscribe over Redis."""

    def __init__(self, url: Optional[str] = None, client: Optional[aioredis.Redis] = None):
        self.client = client or aioredis.from_url(
            url or get_settings().redis_url,
            decode_responses=True,
        )

    @property
    def provider_name(self) -> str:
        return "redis"

    async def publish(self, topic: str, event: dict[str, Any]) -> int:
        return await self.client.publish(topic, json.dumps(event, default=str))

    async def subscribe(self, topic: str, handler: EventHandler) -> Unsubscribe:
        pubsub = self.client.pubsub()
        await pubsub.subscribe(topic)

        async def reader() -> None:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    event = json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning(f"Dropping malformed event on {topic}: {message['data']!r}")
                    continue
                try:
                    await handler(event)
                except Exception as e:
                    logger.warning(f"Subscriber on {topic} failed: {e}")

        task = asyncio.create_task(reader())

        def report_crash(done: asyncio.Task) -> None:
            if not done.cancelled() and done.exception() is not None:
                logger.error(f"Reader for {topic} stopped: {done.exception()!r}")

        task.add_done_callback(report_crash)
        closed = False

        async def unsubscribe() -> None:
            nonlocal closed
            if closed:
                return
            closed = True
            task.cancel()
            # Waits without re-raising; a crashed reader was logged by report_crash
            await asyncio.wait([task])
            try:
                await pubsub.unsubscribe(topic)
            except (RedisError, OSError) as e:
                logger.warning(f"Unsubscribe from {topic} failed: {e}")
            finally:
                await pubsub.aclose()

        return unsubscribe

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
