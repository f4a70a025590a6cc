"""The interception layer as one object.

:class:`OfflineWorker` wires one generation together: a
:class:`~shellcache.lifecycle.LifecycleManager` for its version, the
strategy table from :func:`~shellcache.strategies.build_strategies`, and a
:class:`~shellcache.background.BackgroundTasks` registry for deferred cache
writes. Requests go through :func:`~shellcache.classifier.classify` and are
dispatched to exactly one strategy.

Used as an async context manager, the worker drains its background work on
exit, so no deferred write is abandoned when the host shuts down::

    async with OfflineWorker(config, storage, transport) as worker:
        await worker.install()
        await worker.activate()
        response = await worker.handle(request)

The worker does not own *storage* or *transport*; close them separately.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from shellcache.background import BackgroundTasks
from shellcache.cache.storage import CacheStorage
from shellcache.classifier import classify
from shellcache.client.transport import Transport
from shellcache.clients import ClientRegistry
from shellcache.lifecycle import LifecycleManager
from shellcache.models import (
    ActivateReport,
    InstallReport,
    InterceptedRequest,
    Outcome,
    RequestClass,
    WorkerConfig,
)
from shellcache.strategies import Strategy, build_strategies

logger = logging.getLogger(__name__)


class OfflineWorker:
    """Classifier plus strategy dispatch for one version.

    Args:
        config: Worker configuration, including the version.
        storage: Partition store shared across versions.
        transport: Network transport.
        clients: Open documents claimed on activation.
    """

    def __init__(
        self,
        config: WorkerConfig,
        storage: CacheStorage,
        transport: Transport,
        clients: Optional[ClientRegistry] = None,
    ) -> None:
        self.config = config
        self.background = BackgroundTasks()
        self.lifecycle = LifecycleManager(config, storage, transport, clients)
        self._strategies = build_strategies(self.lifecycle, transport, self.background)

    async def __aenter__(self) -> OfflineWorker:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.drain()

    @property
    def version(self) -> str:
        return self.config.version

    async def install(self) -> InstallReport:
        return await self.lifecycle.install()

    async def activate(self) -> ActivateReport:
        return await self.lifecycle.activate()

    def classify(self, request: InterceptedRequest) -> Optional[RequestClass]:
        return classify(request, self.config.origin)

    def strategy_for(self, request_class: RequestClass) -> Strategy:
        return self._strategies[request_class]

    async def handle(self, request: InterceptedRequest) -> Optional[httpx.Response]:
        """Answer an intercepted request.

        Returns:
            The response, or ``None`` for requests the layer does not
            intercept (anything but GET); the host then handles them itself.
        """
        request_class = self.classify(request)
        if request_class is None:
            logger.debug("Passing through %s %s", request.method, request.url)
            return None
        logger.debug("%s %s -> %s", request.method, request.url, request_class.value)
        return await self._strategies[request_class].handle(request)

    async def drain(self) -> list[Outcome]:
        """Wait for every deferred cache write scheduled so far."""
        return await self.background.drain()
