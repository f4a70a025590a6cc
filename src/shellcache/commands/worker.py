"""Worker commands -- drive one generation from the command line.

These commands stand in for the host runtime: they build an
:class:`~shellcache.worker.OfflineWorker` for the resolved config, on a
:class:`~shellcache.cache.DiskCacheStorage` rooted at the partitions
directory, run one lifecycle step or one intercepted request, and wait for
deferred cache writes before exiting.

* ``shellcache install`` -- pre-cache the shell for the configured version
* ``shellcache activate`` -- delete other versions' partitions
* ``shellcache fetch URL`` -- intercept one GET request
* ``shellcache partitions`` -- list partitions and their entry counts
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import typer

from shellcache.exit_codes import EXIT_NETWORK_FAILURE
from shellcache.models import ActivateReport, InstallReport, WorkerConfig
from shellcache.output import debug, format_response, info, print_table, success, warning
from shellcache.worker import OfflineWorker

T = TypeVar("T")


def _resolve(ctx: typer.Context) -> WorkerConfig:
    from shellcache.config import resolve_config

    obj = ctx.obj or {}
    return resolve_config(
        cli_version=obj.get("worker_version"),
        cli_origin=obj.get("origin"),
        cli_cache_dir=obj.get("cache_dir"),
    )


def _run(
    config: WorkerConfig,
    body: Callable[[OfflineWorker], Awaitable[T]],
    offline: bool = False,
) -> T:
    """Run *body(worker)* on a fresh event loop, then drain and close everything."""
    from shellcache.cache import DiskCacheStorage
    from shellcache.client import HttpxTransport, OfflineTransport
    from shellcache.config import get_partitions_dir

    async def _main() -> T:
        storage = DiskCacheStorage(get_partitions_dir(config))
        transport = OfflineTransport() if offline else HttpxTransport(config.request)
        try:
            async with transport, OfflineWorker(config, storage, transport) as worker:
                return await body(worker)
        finally:
            await storage.close()

    return asyncio.run(_main())


def install_command(ctx: typer.Context) -> None:
    """Pre-cache the shell asset set for the configured version.

    Failures are reported but do not fail the command: a generation
    installs even when its shell could not be cached.

    Example::

        shellcache --worker-version v2 install
    """
    config = _resolve(ctx)

    async def _install(worker: OfflineWorker) -> InstallReport:
        return await worker.install()

    report = _run(config, _install)
    if report.error:
        warning(f"Shell not cached for {report.version}: {report.error}")
    else:
        success(f"Installed {report.version}: {len(report.cached)} entries in {report.partition}")
    format_response(report.model_dump(mode="json"))


def activate_command(ctx: typer.Context) -> None:
    """Delete partitions left behind by other versions.

    Example::

        shellcache --worker-version v2 activate
    """
    config = _resolve(ctx)

    async def _activate(worker: OfflineWorker) -> ActivateReport:
        return await worker.activate()

    report = _run(config, _activate)
    if report.enumeration_error:
        warning(f"Could not list partitions: {report.enumeration_error}")
    for name, reason in report.failed.items():
        warning(f"Could not delete {name}: {reason}")
    success(f"Activated {report.version}: deleted {len(report.deleted)} stale partition(s)")
    format_response(report.model_dump(mode="json"))


def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Absolute URL, or a path on the configured origin."),
    navigate: bool = typer.Option(
        False, "--navigate", help="Treat the request as a top-level document load."
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Simulate an unreachable network."
    ),
) -> None:
    """Intercept one GET request and print the response.

    Exits with code 6 when the result is the synthetic offline response.

    Example::

        shellcache fetch /app.js
        shellcache fetch / --navigate --offline
    """
    from shellcache.client import is_unavailable
    from shellcache.client.response import format_fetch_response
    from shellcache.exceptions import InvalidUsageError
    from shellcache.models import InterceptedRequest, RequestMode

    config = _resolve(ctx)
    target = url if "://" in url else config.resolve(url)
    try:
        request = InterceptedRequest(
            url=target, mode=RequestMode.NAVIGATE if navigate else RequestMode.NO_CORS
        )
    except ValueError as exc:
        raise InvalidUsageError(f"Cannot fetch {url!r}: {exc}") from None

    async def _fetch(worker: OfflineWorker):  # noqa: ANN202
        request_class = worker.classify(request)
        response = await worker.handle(request)
        outcomes = await worker.drain()
        return request_class, response, outcomes

    request_class, response, outcomes = _run(config, _fetch, offline=offline)
    for outcome in outcomes:
        debug(f"Background write: {'ok' if outcome.ok else outcome.error}")

    format_fetch_response(response, request_class.value)
    if is_unavailable(response):
        warning("Offline and no cached copy.")
        raise typer.Exit(code=EXIT_NETWORK_FAILURE)


def partitions_command(ctx: typer.Context) -> None:
    """List partitions with their entry counts and ownership.

    ``current`` partitions belong to the configured version, ``stale`` ones
    to another version and will be deleted by the next ``activate``.

    Example::

        shellcache --json partitions
    """
    config = _resolve(ctx)

    async def _list(worker: OfflineWorker) -> list[list[str]]:
        lifecycle = worker.lifecycle
        storage = lifecycle.storage
        rows: list[list[str]] = []
        for name in await storage.keys():
            partition = await storage.get(name)
            count = len(await partition.keys()) if partition is not None else 0
            if lifecycle.owns(name):
                status = "current"
            elif lifecycle.is_stale(name):
                status = "stale"
            else:
                status = "foreign"
            rows.append([name, str(count), status])
        return rows

    rows = _run(config, _list)
    if not rows:
        info("No partitions.")
        return
    print_table(["partition", "entries", "status"], rows, title="Partitions")
