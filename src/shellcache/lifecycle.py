"""Generation lifecycle -- install and activate one version of the layer.

:class:`LifecycleManager` owns the two partitions of its version and is the
only component that creates or deletes partitions:

* ``shell-{version}`` -- the boot assets, pre-cached at install time
* ``runtime-{version}`` -- resources cached lazily while serving

Partition names are the only persisted format shellcache defines. Activation
deletes every ``shell-*`` / ``runtime-*`` partition that does not belong to
the current version, so the names must stay exactly ``{role}-{version}``.

Both phases are best-effort. A generation whose shell could not be
pre-cached still installs, trading guaranteed offline readiness for
availability; a generation that could not clean up old partitions still
activates, since stale partitions are never read.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from shellcache.cache.storage import CacheStorage, Partition
from shellcache.client.transport import Transport
from shellcache.clients import ClientRegistry
from shellcache.exceptions import CacheWriteError, ShellcacheError
from shellcache.models import (
    ActivateReport,
    CacheEntry,
    GenerationState,
    InstallReport,
    InterceptedRequest,
    Outcome,
    WorkerConfig,
)

logger = logging.getLogger(__name__)

SHELL_PREFIX = "shell-"
RUNTIME_PREFIX = "runtime-"


def shell_partition_name(version: str) -> str:
    return f"{SHELL_PREFIX}{version}"


def runtime_partition_name(version: str) -> str:
    return f"{RUNTIME_PREFIX}{version}"


class LifecycleManager:
    """Install/activate driver and partition owner for one version.

    Args:
        config: Worker configuration; ``config.version`` is fixed for the
            lifetime of the manager.
        storage: Partition store shared by every generation.
        transport: Network used to pre-cache the shell.
        clients: Open documents to claim on activation. A private, empty
            registry is used when omitted.

    Example::

        manager = LifecycleManager(config, storage, transport)
        await manager.install()
        await manager.activate()
    """

    def __init__(
        self,
        config: WorkerConfig,
        storage: CacheStorage,
        transport: Transport,
        clients: Optional[ClientRegistry] = None,
    ) -> None:
        self._config = config
        self._storage = storage
        self._transport = transport
        self._clients = clients if clients is not None else ClientRegistry()
        self.state = GenerationState.PARSED
        self.skip_waiting = False

    @property
    def config(self) -> WorkerConfig:
        return self._config

    @property
    def version(self) -> str:
        return self._config.version

    @property
    def shell_name(self) -> str:
        return shell_partition_name(self.version)

    @property
    def runtime_name(self) -> str:
        return runtime_partition_name(self.version)

    @property
    def storage(self) -> CacheStorage:
        return self._storage

    @property
    def clients(self) -> ClientRegistry:
        return self._clients

    async def shell(self) -> Partition:
        """Open (creating if needed) this version's shell partition."""
        return await self._storage.open(self.shell_name)

    async def runtime(self) -> Partition:
        """Open (creating if needed) this version's runtime partition."""
        return await self._storage.open(self.runtime_name)

    async def match(self, key: str, names: Sequence[str]) -> Optional[CacheEntry]:
        """Look *key* up in the given partitions of this version, first hit wins.

        Never creates a partition and never reads one of another version.
        """
        owned = [name for name in names if self.owns(name)]
        return await self._storage.match(key, owned)

    def owns(self, name: str) -> bool:
        return name in (self.shell_name, self.runtime_name)

    def is_stale(self, name: str) -> bool:
        """Whether *name* is a shellcache partition of some other version."""
        return name.startswith((SHELL_PREFIX, RUNTIME_PREFIX)) and not self.owns(name)

    # ------------------------------------------------------------------ #
    # Install
    # ------------------------------------------------------------------ #

    async def install(self) -> InstallReport:
        """Pre-cache the shell asset set into ``shell-{version}``.

        All assets are fetched before any is written, and every one must
        come back with a 2xx status, so the shell never holds a partial set
        from a failed attempt. Failures are logged and reported, not raised.
        Installing the same version again rewrites the same keys.
        """
        self.state = GenerationState.INSTALLING
        # Replace the active generation as soon as install finishes.
        self.skip_waiting = True
        report = InstallReport(version=self.version, partition=self.shell_name)

        try:
            shell = await self.shell()
            report.cached = await self._add_all(shell, self._config.shell_urls)
        except ShellcacheError as exc:
            logger.warning("Shell pre-cache for %s failed: %s", self.version, exc)
            report.error = str(exc)
        else:
            logger.info("Installed %s with %d shell entries", self.version, len(report.cached))

        self.state = GenerationState.INSTALLED
        return report

    async def _add_all(self, partition: Partition, urls: list[str]) -> list[str]:
        requests = [InterceptedRequest(url=url) for url in urls]
        responses = await asyncio.gather(*(self._transport.fetch(req) for req in requests))

        for req, response in zip(requests, responses):
            if not response.is_success:
                raise CacheWriteError(
                    f"Shell asset {req.url} returned HTTP {response.status_code}"
                )

        keys: list[str] = []
        for req, response in zip(requests, responses):
            await partition.put(req.key, CacheEntry.from_response(response))
            keys.append(req.key)
        return keys

    # ------------------------------------------------------------------ #
    # Activate
    # ------------------------------------------------------------------ #

    async def activate(self) -> ActivateReport:
        """Delete other versions' partitions, then claim open clients.

        Clients are claimed even when enumeration or deletion fails.
        """
        self.state = GenerationState.ACTIVATING
        report = ActivateReport(version=self.version)

        try:
            names = await self._storage.keys()
        except ShellcacheError as exc:
            logger.warning("Cannot enumerate partitions for cleanup: %s", exc)
            report.enumeration_error = str(exc)
            names = []

        stale = [name for name in names if self.is_stale(name)]
        outcomes = await asyncio.gather(*(self._delete(name) for name in stale))
        for name, outcome in zip(stale, outcomes):
            if outcome.ok:
                report.deleted.append(name)
            else:
                report.failed[name] = outcome.error or "unknown error"

        report.claimed = self._clients.claim(self.version)
        self.state = GenerationState.ACTIVATED
        logger.info(
            "Activated %s: deleted %d stale partition(s), claimed %d client(s)",
            self.version, len(report.deleted), len(report.claimed),
        )
        return report

    async def _delete(self, name: str) -> Outcome:
        try:
            await self._storage.delete(name)
        except ShellcacheError as exc:
            logger.warning("Cannot delete stale partition %s: %s", name, exc)
            return Outcome.failure(exc)
        logger.debug("Deleted stale partition %s", name)
        return Outcome.success()
