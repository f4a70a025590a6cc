"""Partition store interface and the in-process backend.

A :class:`CacheStorage` holds named :class:`Partition` objects, each a
key -> :class:`~shellcache.models.CacheEntry` map. Keys are request keys
built by :func:`~shellcache.models.request_key`. The interception layer
only ever uses:

* :meth:`CacheStorage.open` -- open-or-create a partition by name
* :meth:`Partition.put` / :meth:`Partition.match` -- write / read one entry
* :meth:`CacheStorage.match` -- read one entry from existing partitions
  without creating any
* :meth:`CacheStorage.delete` -- drop a partition and all its entries
* :meth:`CacheStorage.keys` -- list partition names

Every method is a coroutine so that backends doing real I/O yield to the
event loop. Writes replace the previous entry for a key wholesale.
"""

from __future__ import annotations

import abc
from typing import Iterable, Optional

from shellcache.exceptions import PartitionError
from shellcache.models import PARTITION_NAME_PATTERN, CacheEntry


def validate_partition_name(name: str) -> str:
    """Return *name* unchanged or raise :class:`PartitionError` if unusable."""
    if not PARTITION_NAME_PATTERN.fullmatch(name):
        raise PartitionError(f"Invalid partition name: {name!r}")
    return name


class Partition(abc.ABC):
    """One named key -> entry store."""

    def __init__(self, name: str) -> None:
        self.name = name

    @abc.abstractmethod
    async def match(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under *key*, or ``None`` on a miss.

        Raises:
            PartitionError: If the backend cannot be read.
        """

    @abc.abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store *entry* under *key*, replacing any previous entry.

        Raises:
            CacheWriteError: If the entry cannot be stored.
        """

    @abc.abstractmethod
    async def keys(self) -> list[str]:
        """Return the request keys currently stored."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class CacheStorage(abc.ABC):
    """A set of named partitions."""

    @abc.abstractmethod
    async def open(self, name: str) -> Partition:
        """Open the partition called *name*, creating it if needed."""

    @abc.abstractmethod
    async def delete(self, name: str) -> bool:
        """Delete a partition. Returns ``False`` if it did not exist.

        Raises:
            PartitionError: If the partition exists but cannot be removed.
        """

    @abc.abstractmethod
    async def keys(self) -> list[str]:
        """Return the names of all existing partitions.

        Raises:
            PartitionError: If the store cannot be enumerated.
        """

    @abc.abstractmethod
    async def get(self, name: str) -> Optional[Partition]:
        """Return the partition called *name* only if it already exists."""

    async def match(self, key: str, names: Iterable[str]) -> Optional[CacheEntry]:
        """Look *key* up in each named partition in order; first hit wins.

        Partitions that do not exist are skipped, never created.
        """
        for name in names:
            partition = await self.get(name)
            if partition is None:
                continue
            entry = await partition.match(key)
            if entry is not None:
                return entry
        return None

    async def close(self) -> None:
        """Release backend resources. The in-process backend holds none."""


class MemoryPartition(Partition):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._entries: dict[str, CacheEntry] = {}

    async def match(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def put(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    async def keys(self) -> list[str]:
        return list(self._entries)


class MemoryCacheStorage(CacheStorage):
    """Dict-backed storage; partitions live as long as the object does.

    Used by the test-suite and anywhere durability is not wanted.
    """

    def __init__(self) -> None:
        self._partitions: dict[str, MemoryPartition] = {}

    async def open(self, name: str) -> Partition:
        validate_partition_name(name)
        partition = self._partitions.get(name)
        if partition is None:
            partition = self._partitions[name] = MemoryPartition(name)
        return partition

    async def delete(self, name: str) -> bool:
        return self._partitions.pop(name, None) is not None

    async def keys(self) -> list[str]:
        return list(self._partitions)

    async def get(self, name: str) -> Optional[Partition]:
        return self._partitions.get(name)
