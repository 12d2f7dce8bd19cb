# storefront/db/redis.py
import logging

import redis.asyncio as redis

from storefront.core.config import Settings

logger = logging.getLogger(__name__)


class RedisConnection:
    """
    Owns the Redis client used for cache and ephemeral state.
    Redis is optional: if it is not configured or unreachable the client stays None
    and every cache operation degrades to its fail-soft result.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client: redis.Redis | None = None

    async def connect(self) -> None:
        if not self.settings.REDIS_URL:
            logger.warning("no REDIS_URL configured, skipping redis connection")
            self.client = None
            return

        client = redis.from_url(
            self.settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=self.settings.redis_timeout_s,
            socket_timeout=self.settings.redis_timeout_s,
        )
        try:
            await client.ping()
            self.client = client
            logger.info("redis connected url=%s", self.settings.REDIS_URL)
        except (redis.RedisError, OSError) as e:
            logger.warning("redis connection failed, cache disabled err=%s", e)
            await client.aclose()
            self.client = None

    async def disconnect(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("redis disconnected")
