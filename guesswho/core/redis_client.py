"""
Redis client configuration and connection management
Redis客户端配置和连接管理

Redis is optional. Without REDIS_URL the service runs as a single process
with in-memory room locks and no cross-process event fan-out.
"""

import redis.asyncio as redis
from typing import Optional
from guesswho.core.config import settings
import logging
import json

logger = logging.getLogger(__name__)


class RedisManager:
    """Redis connection pool holder"""

    def __init__(self):
        self.pool: Optional[redis.ConnectionPool] = None
        self.client: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def initialize(self, url: Optional[str] = None):
        """Initialize the connection pool when a Redis URL is configured"""
        url = url or settings.REDIS_URL
        if not url:
            logger.info("REDIS_URL not set, running without Redis")
            return

        self.pool = redis.ConnectionPool.from_url(
            url,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            encoding="utf-8",
            decode_responses=True,
        )
        self.client = redis.Redis(connection_pool=self.pool)
        await self.client.ping()
        logger.info("Redis manager initialized successfully")

    async def health_check(self) -> bool:
        if not self.client:
            return False
        try:
            return bool(await self.client.ping())
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def publish_message(self, channel: str, message: dict) -> int:
        """Publish a JSON message; returns the number of receivers"""
        if not self.client:
            return 0
        return await self.client.publish(channel, json.dumps(message, default=str))

    async def close(self):
        """Close Redis connections"""
        if self.client:
            await self.client.aclose()
            self.client = None
        if self.pool:
            await self.pool.aclose()
            self.pool = None
            logger.info("Redis connections closed")


# Global Redis manager instance
redis_manager = RedisManager()


async def init_redis():
    """Initialize Redis connection"""
    await redis_manager.initialize()


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis client, or None in single-process mode"""
    return redis_manager.client


async def close_redis():
    """Close Redis connection"""
    await redis_manager.close()


async def redis_health_check() -> dict:
    """Redis health summary for the health endpoint"""
    if not redis_manager.enabled:
        return {"status": "disabled"}
    healthy = await redis_manager.health_check()
    return {"status": "healthy" if healthy else "unhealthy"}
