"""
Snapshot Storage Abstract Base Class

Defines the key-value contract the ledger uses to survive restarts.
Values are opaque strings (JSON snapshots); keys are scoped by identity.

Implementations raise ``PersistenceFailure`` for any backend error so the
ledger can decide how harmful the failure is (start empty on load, warn and
continue on save).

Design Pattern: Strategy Pattern
    - MemoryStorageService for development and tests
    - FileStorageService for a single device
    - RedisStorageService for shared deployments
"""

from abc import ABC, abstractmethod
from typing import Optional


class BaseStorageService(ABC):
    """Abstract base class for snapshot stores."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the storage provider name (e.g. "memory", "redis")."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Returns:
            The stored string, or None when the key is absent

        Raises:
            PersistenceFailure: If the store cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            PersistenceFailure: If the store cannot be written
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key; absent keys are ignored."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the store is reachable."""
        pass
