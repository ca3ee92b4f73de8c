"""
Redis Snapshot Storage

Production snapshot store for deployments where several devices share one
Redis instance. Uses the asyncio client from redis-py.

Requirements:
    - REDIS_URL must point at a reachable Redis server
"""

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from waiter_orders.core.config import get_settings
from waiter_orders.core.exceptions import PersistenceFailure
from waiter_orders.services.storage.base import BaseStorageService

logger = logging.getLogger(__name__)


class RedisStorageService(BaseStorageService):
    """
    Redis-backed snapshot store.

    Example:
        >>> store = RedisStorageService()
        >>> await store.set("waiterOrders_abc", "{...}")
        >>> await store.get("waiterOrders_abc")
        '{...}'
    """

    def __init__(self, client: Optional[aioredis.Redis] = None):
        """
        Args:
            client: Pre-built async client (tests pass a fakeredis instance);
                built from REDIS_URL when omitted
        """
        if client is None:
            settings = get_settings()
            client = aioredis.Redis.from_url(settings.redis_url, decode_responses=True)
        self._client = client
        logger.info("RedisStorageService initialized")

    @property
    def provider_name(self) -> str:
        return "redis"

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._client.get(key)
            if isinstance(value, bytes):
                value = value.decode("utf-8")
        except RedisError as e:
            raise PersistenceFailure(key, str(e)) from e
        except UnicodeDecodeError as e:
            raise PersistenceFailure(key, f"snapshot is not UTF-8 text: {e}") from e
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(key, value)
        except RedisError as e:
            raise PersistenceFailure(key, str(e)) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            raise PersistenceFailure(key, str(e)) from e

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
