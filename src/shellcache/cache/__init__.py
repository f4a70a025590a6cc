"""Versioned cache partitions for shellcache.

This package provides the partition store the interception layer reads and
writes: :class:`CacheStorage` (the interface), :class:`MemoryCacheStorage`
(in-process) and :class:`DiskCacheStorage` (durable, one :mod:`diskcache`
directory per partition).

Partitions are created and deleted only by
:class:`~shellcache.lifecycle.LifecycleManager`; the strategies in
:mod:`shellcache.strategies` read and write entries inside them.
"""

from shellcache.cache.disk import DiskCacheStorage
from shellcache.cache.storage import CacheStorage, MemoryCacheStorage, Partition

__all__ = ["CacheStorage", "DiskCacheStorage", "MemoryCacheStorage", "Partition"]
