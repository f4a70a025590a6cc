"""Response strategies -- one policy per :class:`~shellcache.models.RequestClass`.

* :class:`NavigationStrategy` -- network first; refresh the shell's boot
  document in the background; offline, fall back to the boot document,
  then the root document.
* :class:`SameOriginStrategy` -- stale-while-revalidate over the runtime
  and shell partitions; cold misses go to the network and are stored in
  the runtime partition.
* :class:`CrossOriginStrategy` -- network only, never cached.

No strategy raises for network or cache trouble. The worst a caller sees is
the synthetic ``504 Offline`` response from
:func:`~shellcache.client.response.unavailable_response`. Cache writes
return an :class:`~shellcache.models.Outcome` that the interception path
discards: caching problems never change the response that was decided on.
"""

from __future__ import annotations

import abc
import logging
from typing import Awaitable, Callable, Optional

import httpx

from shellcache.background import BackgroundTasks
from shellcache.cache.storage import Partition
from shellcache.client.response import unavailable_response
from shellcache.client.transport import Transport
from shellcache.exceptions import CacheError, NetworkFailure, ShellcacheError
from shellcache.lifecycle import LifecycleManager
from shellcache.models import CacheEntry, InterceptedRequest, Outcome, RequestClass

logger = logging.getLogger(__name__)


class Strategy(abc.ABC):
    """Produces a response for one class of intercepted request.

    Args:
        lifecycle: Owner of the current version's partitions.
        transport: Network to fetch through.
        background: Where deferred cache writes are kept alive.
    """

    request_class: RequestClass

    def __init__(
        self,
        lifecycle: LifecycleManager,
        transport: Transport,
        background: BackgroundTasks,
    ) -> None:
        self._lifecycle = lifecycle
        self._transport = transport
        self._background = background

    @abc.abstractmethod
    async def handle(self, request: InterceptedRequest) -> httpx.Response:
        """Answer *request*. Never raises for network or cache failures."""

    async def _store(
        self,
        open_partition: Callable[[], Awaitable[Partition]],
        key: str,
        entry: CacheEntry,
    ) -> Outcome:
        try:
            partition = await open_partition()
            await partition.put(key, entry)
        except ShellcacheError as exc:
            logger.warning("Cache write of %s failed: %s", key, exc)
            return Outcome.failure(exc)
        logger.debug("Stored %s in %s", key, partition.name)
        return Outcome.success()

    async def _lookup(self, key: str, names: list[str]) -> Optional[CacheEntry]:
        try:
            return await self._lifecycle.match(key, names)
        except CacheError as exc:
            logger.warning("Cache read of %s failed, treating as miss: %s", key, exc)
            return None

    @staticmethod
    def _unavailable(request: InterceptedRequest) -> httpx.Response:
        return unavailable_response(httpx.Request(request.method, request.url))


class NavigationStrategy(Strategy):
    """Network-first for document loads, so refresh works online and offline."""

    request_class = RequestClass.NAVIGATION

    async def handle(self, request: InterceptedRequest) -> httpx.Response:
        config = self._lifecycle.config
        try:
            response = await self._transport.fetch(request)
        except NetworkFailure as exc:
            logger.debug("Navigation to %s offline: %s", request.url, exc)
            return await self._offline(request)

        if response.is_success:
            # Any successful navigation becomes the new offline boot document.
            self._background.wait_until(
                self._store(
                    self._lifecycle.shell, config.boot_key, CacheEntry.from_response(response)
                ),
                name=f"refresh {config.boot_key}",
            )
        return response

    async def _offline(self, request: InterceptedRequest) -> httpx.Response:
        config = self._lifecycle.config
        shell = [self._lifecycle.shell_name]
        for key in (config.boot_key, config.root_key):
            entry = await self._lookup(key, shell)
            if entry is not None:
                logger.debug("Serving %s from %s", request.url, key)
                return entry.to_response()
        return self._unavailable(request)


class SameOriginStrategy(Strategy):
    """Stale-while-revalidate for the application's own resources.

    A cached copy is returned at once and refreshed for the *next* request;
    the current one never waits on the network when a copy exists.
    """

    request_class = RequestClass.SAME_ORIGIN

    async def handle(self, request: InterceptedRequest) -> httpx.Response:
        # Runtime first: it holds revalidated copies of anything also in the shell.
        names = [self._lifecycle.runtime_name, self._lifecycle.shell_name]
        cached = await self._lookup(request.key, names)
        if cached is not None:
            logger.debug("Cache hit for %s", request.key)
            self._background.wait_until(
                self._revalidate(request), name=f"revalidate {request.key}"
            )
            return cached.to_response()

        logger.debug("Cache miss for %s", request.key)
        try:
            response = await self._transport.fetch(request)
        except NetworkFailure as exc:
            logger.debug("No cached copy of %s and offline: %s", request.url, exc)
            return self._unavailable(request)

        if response.is_success:
            _ = await self._store(
                self._lifecycle.runtime, request.key, CacheEntry.from_response(response)
            )
        return response

    async def _revalidate(self, request: InterceptedRequest) -> Outcome:
        try:
            fresh = await self._transport.fetch(request)
        except NetworkFailure as exc:
            logger.debug("Revalidation of %s skipped: %s", request.url, exc)
            return Outcome.failure(exc)
        if not fresh.is_success:
            return Outcome(ok=False, error=f"HTTP {fresh.status_code}")
        return await self._store(
            self._lifecycle.runtime, request.key, CacheEntry.from_response(fresh)
        )


class CrossOriginStrategy(Strategy):
    """Pass-through for third-party origins: never read from or written to a partition."""

    request_class = RequestClass.CROSS_ORIGIN

    async def handle(self, request: InterceptedRequest) -> httpx.Response:
        try:
            return await self._transport.fetch(request)
        except NetworkFailure as exc:
            logger.debug("Cross-origin %s offline: %s", request.url, exc)
            return self._unavailable(request)


STRATEGIES: tuple[type[Strategy], ...] = (
    NavigationStrategy,
    SameOriginStrategy,
    CrossOriginStrategy,
)


def build_strategies(
    lifecycle: LifecycleManager,
    transport: Transport,
    background: BackgroundTasks,
) -> dict[RequestClass, Strategy]:
    """Return the dispatch table mapping each request class to its strategy."""
    return {
        cls.request_class: cls(lifecycle, transport, background) for cls in STRATEGIES
    }
