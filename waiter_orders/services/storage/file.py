"""
File Snapshot Storage with Concurrency Control

One JSON file per key under ``settings.data_directory``. Every read and
write holds a ``FileLock`` on the key's lock file, so two app processes on
the same device never see a half-written snapshot. Writes go to a temporary
file first and are moved into place.

File I/O runs in a worker thread to keep the event loop free.
"""

import asyncio
import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout

from waiter_orders.core.config import get_settings
from waiter_orders.core.exceptions import PersistenceFailure
from waiter_orders.services.storage.base import BaseStorageService

logger = logging.getLogger(__name__)


class FileStorageService(BaseStorageService):
    """Lock-protected file store."""

    def __init__(
        self,
        data_directory: Optional[str] = None,
        lock_timeout: Optional[int] = None,
    ):
        settings = get_settings()
        self.data_dir = Path(data_directory or settings.data_directory) / "snapshots"
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None else settings.storage_lock_timeout
        )
        logger.info(f"FileStorageService initialized ({self.data_dir})")

    @property
    def provider_name(self) -> str:
        return "file"

    def _ensure_data_dir(self) -> None:
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created snapshot directory: {self.data_dir}")

    def _paths(self, key: str) -> tuple[Path, Path]:
        # Keys embed auth tokens; hash them into safe file names.
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:40]
        return self.data_dir / f"{digest}.json", self.data_dir / f"{digest}.json.lock"

    def _read(self, key: str) -> Optional[str]:
        self._ensure_data_dir()
        path, lock_path = self._paths(key)
        with FileLock(str(lock_path), timeout=self.lock_timeout):
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        self._ensure_data_dir()
        path, lock_path = self._paths(key)
        tmp_path = path.with_suffix(".json.tmp")
        with FileLock(str(lock_path), timeout=self.lock_timeout):
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)

    def _delete(self, key: str) -> None:
        path, lock_path = self._paths(key)
        with FileLock(str(lock_path), timeout=self.lock_timeout):
            if path.exists():
                path.unlink()

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except Timeout:
            raise PersistenceFailure(key, f"lock timeout ({self.lock_timeout}s)")
        except OSError as e:
            raise PersistenceFailure(key, str(e)) from e
        except UnicodeDecodeError as e:
            raise PersistenceFailure(key, f"snapshot is not UTF-8 text: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except Timeout:
            raise PersistenceFailure(key, f"lock timeout ({self.lock_timeout}s)")
        except OSError as e:
            raise PersistenceFailure(key, str(e)) from e
        logger.debug(f"Snapshot {key[:16]}... written to disk")

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._delete, key)
        except (Timeout, OSError) as e:
            raise PersistenceFailure(key, str(e)) from e

    async def health_check(self) -> bool:
        try:
            self._ensure_data_dir()
            return os.access(self.data_dir, os.W_OK)
        except OSError:
            return False
