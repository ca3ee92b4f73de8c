"""
Snapshot Storage Factory

Returns the store selected by STORAGE_BACKEND.

Usage:
    from waiter_orders.services.storage import get_storage_service

    store = get_storage_service()
    await store.set("waiterOrders_<token>", snapshot)
"""

import logging
from functools import lru_cache

from waiter_orders.core.config import StorageBackend, get_settings
from waiter_orders.services.storage.base import BaseStorageService
from waiter_orders.services.storage.file import FileStorageService
from waiter_orders.services.storage.memory import MemoryStorageService
from waiter_orders.services.storage.redis import RedisStorageService

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage_service() -> BaseStorageService:
    """Get the configured snapshot store (cached)."""
    settings = get_settings()

    if settings.storage_backend == StorageBackend.REDIS:
        logger.info("Storage Service: Using RedisStorageService")
        return RedisStorageService()
    if settings.storage_backend == StorageBackend.FILE:
        logger.info("Storage Service: Using FileStorageService")
        return FileStorageService()

    logger.info("Storage Service: Using MemoryStorageService")
    return MemoryStorageService()


def reset_storage_service() -> None:
    """Clear the cached store instance."""
    get_storage_service.cache_clear()
    logger.debug("Storage service cache cleared")


__all__ = [
    "get_storage_service",
    "reset_storage_service",
    "BaseStorageService",
    "MemoryStorageService",
    "FileStorageService",
    "RedisStorageService",
]
