"""Tests for the stale-while-revalidate same-origin strategy."""

from __future__ import annotations

from shellcache.client import is_unavailable
from shellcache.models import InterceptedRequest
from shellcache.worker import OfflineWorker

APP_JS = "https://app.test/app.js"
APP_JS_KEY = f"GET {APP_JS}"


def _get(url: str = APP_JS) -> InterceptedRequest:
    return InterceptedRequest(url=url)


async def _runtime_body(storage, key: str = APP_JS_KEY):
    runtime = await storage.get("runtime-v1")
    if runtime is None:
        return None
    entry = await runtime.match(key)
    return entry.body if entry is not None else None


class TestColdCache:
    async def test_miss_fetches_and_stores(self, worker: OfflineWorker, network, storage) -> None:
        network.serve(APP_JS, "X", content_type="text/javascript")

        response = await worker.handle(_get())

        assert response.status_code == 200
        assert response.text == "X"
        # Stored before the response is returned.
        assert await _runtime_body(storage) == b"X"
        assert network.hits(APP_JS) == 1

    async def test_error_status_not_stored(self, worker: OfflineWorker, storage) -> None:
        response = await worker.handle(_get("https://app.test/missing.js"))
        assert response.status_code == 404
        assert await _runtime_body(storage, "GET https://app.test/missing.js") is None

    async def test_miss_offline_is_unavailable(self, worker: OfflineWorker, network) -> None:
        """No cached copy and no network yields the synthetic 504, not an exception."""
        network.online = False
        response = await worker.handle(_get())
        assert is_unavailable(response)
        assert response.status_code == 504
        assert response.reason_phrase == "Offline"

    async def test_write_failure_still_returns_response(
        self, config, flaky_storage, transport, network
    ) -> None:
        network.serve(APP_JS, "X")
        flaky_storage.fail_writes = True
        async with OfflineWorker(config, flaky_storage, transport) as worker:
            response = await worker.handle(_get())
        assert response.text == "X"

    async def test_read_failure_falls_through_to_network(
        self, config, flaky_storage, transport, network
    ) -> None:
        network.serve(APP_JS, "X")
        flaky_storage.fail_reads = True
        async with OfflineWorker(config, flaky_storage, transport) as worker:
            await worker.install()
            response = await worker.handle(_get())
        assert response.text == "X"
        assert network.hits(APP_JS) == 1


class TestStaleWhileRevalidate:
    async def test_returns_stale_then_fresh(self, worker: OfflineWorker, network, storage) -> None:
        network.serve(APP_JS, "X")
        await worker.handle(_get())

        network.serve(APP_JS, "Y")
        stale = await worker.handle(_get())
        assert stale.text == "X"

        await worker.drain()
        assert await _runtime_body(storage) == b"Y"
        fresh = await worker.handle(_get())
        assert fresh.text == "Y"

    async def test_hit_offline_serves_cached_copy(self, worker: OfflineWorker, network) -> None:
        network.serve(APP_JS, "X")
        await worker.handle(_get())

        network.online = False
        response = await worker.handle(_get())
        outcomes = await worker.drain()

        assert response.status_code == 200
        assert response.text == "X"
        assert [o.ok for o in outcomes] == [False]

    async def test_explicit_default_port_hits_shell_offline(self, worker: OfflineWorker, network) -> None:
        network.online = False

        response = await worker.handle(_get("https://app.test:443/index.html#top"))
        await worker.drain()

        assert response.status_code == 200
        assert response.text == "<html>index</html>"

    async def test_failed_revalidation_keeps_cached_copy(
        self, worker: OfflineWorker, network, storage
    ) -> None:
        network.serve(APP_JS, "X")
        await worker.handle(_get())

        network.serve(APP_JS, "oops", status=500)
        await worker.handle(_get())
        outcomes = await worker.drain()

        assert outcomes[0].error == "HTTP 500"
        assert await _runtime_body(storage) == b"X"

    async def test_shell_hit_revalidates_into_runtime(
        self, worker: OfflineWorker, network, storage
    ) -> None:
        """Shell entries are served as-is; fresh copies land in runtime, never the shell."""
        url = "https://app.test/index.html"
        network.serve(url, "<html>index v2</html>", content_type="text/html")

        response = await worker.handle(_get(url))
        assert response.text == "<html>index</html>"
        await worker.drain()

        shell = await storage.get("shell-v1")
        assert (await shell.match(f"GET {url}")).body == b"<html>index</html>"
        assert await _runtime_body(storage, f"GET {url}") == b"<html>index v2</html>"

        # Runtime is consulted first from now on.
        assert (await worker.handle(_get(url))).text == "<html>index v2</html>"
        await worker.drain()

    async def test_query_string_is_part_of_the_key(self, worker: OfflineWorker, network) -> None:
        network.serve("https://app.test/api/items?page=1", "page 1")
        network.serve("https://app.test/api/items?page=2", "page 2")
        await worker.handle(_get("https://app.test/api/items?page=1"))

        network.online = False
        assert (await worker.handle(_get("https://app.test/api/items?page=1"))).text == "page 1"
        assert is_unavailable(await worker.handle(_get("https://app.test/api/items?page=2")))
        await worker.drain()
