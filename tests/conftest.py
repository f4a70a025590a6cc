"""Shared test fixtures for shellcache.

Provides a scriptable fake network (served through :class:`httpx.MockTransport`),
worker configs, partition stores, and isolated config directories. These
fixtures are discovered by pytest and available to all test modules.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx
import pytest

from shellcache.cache import DiskCacheStorage, MemoryCacheStorage
from shellcache.cache.storage import MemoryPartition, Partition, validate_partition_name
from shellcache.client import HttpxTransport
from shellcache.exceptions import CacheWriteError, PartitionError
from shellcache.models import CacheEntry, RequestConfig, WorkerConfig
from shellcache.output import OutputFormat, OutputManager, reset_output, set_output
from shellcache.worker import OfflineWorker


ORIGIN = "https://app.test"


# ---------------------------------------------------------------------------
# Fake network
# ---------------------------------------------------------------------------


class FakeNetwork:
    """Routes absolute URLs to canned responses; can be switched offline.

    Unknown URLs answer 404. While :attr:`online` is ``False`` every request
    raises :class:`httpx.ConnectError`, which the transport turns into a
    :class:`~shellcache.exceptions.NetworkFailure`.
    """

    def __init__(self) -> None:
        self.online = True
        self.routes: dict[str, tuple[int, bytes, dict[str, str]]] = {}
        self.requests: list[httpx.Request] = []

    def serve(
        self,
        url: str,
        body: str | bytes,
        status: int = 200,
        content_type: str = "text/plain",
    ) -> None:
        if isinstance(body, str):
            body = body.encode()
        self.routes[url] = (status, body, {"content-type": content_type})

    def redirect_loop(self, url: str) -> None:
        """Answer *url* with a redirect back to itself."""
        self.routes[url] = (302, b"", {"location": url})

    def hits(self, url: str) -> int:
        return sum(1 for req in self.requests if str(req.url) == url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.online:
            raise httpx.ConnectError("network unreachable", request=request)
        status, body, headers = self.routes.get(str(request.url), (404, b"", {}))
        return httpx.Response(status, content=body, headers=headers)

    def transport(self, config: Optional[RequestConfig] = None) -> HttpxTransport:
        return HttpxTransport(config or RequestConfig(), transport=httpx.MockTransport(self.handler))


@pytest.fixture
def network() -> FakeNetwork:
    """A fake network serving the default shell assets."""
    net = FakeNetwork()
    net.serve(f"{ORIGIN}/", "<html>root</html>", content_type="text/html")
    net.serve(f"{ORIGIN}/index.html", "<html>index</html>", content_type="text/html")
    return net


# ---------------------------------------------------------------------------
# Failing storage
# ---------------------------------------------------------------------------


class FlakyPartition(MemoryPartition):
    def __init__(self, name: str, storage: FlakyStorage) -> None:
        super().__init__(name)
        self._storage = storage

    async def match(self, key: str) -> Optional[CacheEntry]:
        if self._storage.fail_reads:
            raise PartitionError(f"{self.name} is unreadable")
        return await super().match(key)

    async def put(self, key: str, entry: CacheEntry) -> None:
        if self._storage.fail_writes:
            raise CacheWriteError("quota exceeded")
        await super().put(key, entry)


class FlakyStorage(MemoryCacheStorage):
    """In-memory storage whose operations can be made to fail on demand."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False
        self.fail_keys = False
        self.undeletable: set[str] = set()

    async def open(self, name: str) -> Partition:
        validate_partition_name(name)
        if name not in self._partitions:
            self._partitions[name] = FlakyPartition(name, self)
        return self._partitions[name]

    async def delete(self, name: str) -> bool:
        if name in self.undeletable:
            raise PartitionError(f"{name} is locked")
        return await super().delete(name)

    async def keys(self) -> list[str]:
        if self.fail_keys:
            raise PartitionError("storage unavailable")
        return await super().keys()


# ---------------------------------------------------------------------------
# Worker fixtures
# ---------------------------------------------------------------------------


def make_config(version: str = "v1", **overrides) -> WorkerConfig:
    return WorkerConfig(version=version, origin=ORIGIN, **overrides)


@pytest.fixture
def config() -> WorkerConfig:
    """Version ``v1`` on ``https://app.test`` with the default shell assets."""
    return make_config()


@pytest.fixture
def config_factory():
    """Build a WorkerConfig on the test origin: ``config_factory("v2", shell_assets=[...])``."""
    return make_config


@pytest.fixture
def storage() -> MemoryCacheStorage:
    return MemoryCacheStorage()


@pytest.fixture
def flaky_storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture
async def disk_storage(tmp_path: Path):
    """A DiskCacheStorage under tmp_path, closed after the test."""
    store = DiskCacheStorage(tmp_path / "partitions")
    yield store
    await store.close()


@pytest.fixture
async def transport(network: FakeNetwork):
    t = network.transport()
    yield t
    await t.aclose()


@pytest.fixture
async def worker(config: WorkerConfig, storage: MemoryCacheStorage, transport: HttpxTransport):
    """An installed and activated ``v1`` worker over memory storage."""
    async with OfflineWorker(config, storage, transport) as w:
        await w.install()
        await w.activate()
        yield w


# ---------------------------------------------------------------------------
# Config and output isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear SHELLCACHE_* variables."""
    monkeypatch.setattr("shellcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["SHELLCACHE_VERSION", "SHELLCACHE_ORIGIN", "SHELLCACHE_CACHE_DIR"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_output_between_tests():
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()
