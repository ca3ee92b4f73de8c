"""
In-Memory Snapshot Storage

Keeps snapshots in a dict for the lifetime of the process. Used in
development mode and by the test-suite; nothing survives a restart.
"""

import logging
from typing import Optional

from waiter_orders.services.storage.base import BaseStorageService

logger = logging.getLogger(__name__)


class MemoryStorageService(BaseStorageService):
    """Dict-backed snapshot store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.writes = 0

    @property
    def provider_name(self) -> str:
        return "memory"

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.writes += 1
        logger.debug(f"Memory store: wrote {len(value)} bytes to {key}")

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def health_check(self) -> bool:
        return True
