"""Durable partition store backed by :mod:`diskcache`.

Each partition is its own :class:`diskcache.Cache` directory under a common
root, so listing partitions is a directory listing and deleting one is a
``rmtree``::

    <root>/
        shell-v1/        # diskcache.Cache
        runtime-v1/      # diskcache.Cache

Entries are stored as plain dicts (``CacheEntry.model_dump()``) with no
expiry; staleness is handled by versioned partition names, not TTLs.
diskcache is synchronous, so every call runs in a worker thread via
:func:`asyncio.to_thread` to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio
import shutil
import sqlite3
from pathlib import Path
from typing import Optional

import diskcache

from shellcache.cache.storage import CacheStorage, Partition, validate_partition_name
from shellcache.exceptions import CacheWriteError, PartitionError
from shellcache.models import CacheEntry

# Written by diskcache into every cache directory it creates.
_MARKER = diskcache.core.DBNAME


class DiskPartition(Partition):
    """A partition stored in one :class:`diskcache.Cache` directory."""

    def __init__(self, name: str, cache: diskcache.Cache) -> None:
        super().__init__(name)
        self._cache = cache

    async def match(self, key: str) -> Optional[CacheEntry]:
        try:
            data = await asyncio.to_thread(self._cache.get, key)
        except (OSError, sqlite3.Error) as exc:
            raise PartitionError(f"Cannot read {key!r} from {self.name}: {exc}") from exc
        if data is None:
            return None
        return CacheEntry.model_validate(data)

    async def put(self, key: str, entry: CacheEntry) -> None:
        try:
            await asyncio.to_thread(self._cache.set, key, entry.model_dump())
        except (OSError, sqlite3.Error) as exc:
            raise CacheWriteError(f"Cannot write {key!r} to {self.name}: {exc}") from exc

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(lambda: sorted(self._cache.iterkeys()))

    def close(self) -> None:
        self._cache.close()


class DiskCacheStorage(CacheStorage):
    """Partition store rooted at a filesystem directory.

    Args:
        root: Directory holding one sub-directory per partition. Created on
            first use.

    Example::

        storage = DiskCacheStorage(get_cache_dir() / "partitions")
        shell = await storage.open("shell-v1")
        await shell.put(key, entry)
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._open: dict[str, DiskPartition] = {}

    @property
    def root(self) -> Path:
        return self._root

    async def open(self, name: str) -> Partition:
        validate_partition_name(name)
        partition = self._open.get(name)
        if partition is None:
            try:
                cache = await asyncio.to_thread(diskcache.Cache, str(self._root / name))
            except (OSError, sqlite3.Error) as exc:
                raise PartitionError(f"Cannot open partition {name}: {exc}") from exc
            # Another open() of the same name may have finished while this one waited.
            partition = self._open.get(name)
            if partition is not None:
                cache.close()
            else:
                partition = self._open[name] = DiskPartition(name, cache)
        return partition

    async def delete(self, name: str) -> bool:
        validate_partition_name(name)
        partition = self._open.pop(name, None)
        if partition is not None:
            partition.close()
        path = self._root / name
        if not path.is_dir():
            return False
        try:
            await asyncio.to_thread(shutil.rmtree, path)
        except OSError as exc:
            raise PartitionError(f"Cannot delete partition {name}: {exc}") from exc
        return True

    async def keys(self) -> list[str]:
        def _scan() -> list[str]:
            if not self._root.is_dir():
                return []
            return sorted(
                p.name for p in self._root.iterdir() if (p / _MARKER).is_file()
            )

        try:
            return await asyncio.to_thread(_scan)
        except OSError as exc:
            raise PartitionError(f"Cannot list partitions in {self._root}: {exc}") from exc

    async def get(self, name: str) -> Optional[Partition]:
        if name in self._open:
            return self._open[name]
        if not (self._root / name / _MARKER).is_file():
            return None
        return await self.open(name)

    async def close(self) -> None:
        """Close every open :class:`diskcache.Cache` handle."""
        for partition in self._open.values():
            partition.close()
        self._open.clear()
