"""shellcache -- offline-first request interception for web applications.

An interception layer that keeps a web application booting and serving its
own assets without a network, while preferring live data when the network
is reachable. Each deployment *version* owns two cache partitions,
``shell-{version}`` (boot assets, cached at install) and
``runtime-{version}`` (resources cached while serving); activating a new
version deletes the previous version's partitions.

Typical use::

    async with OfflineWorker(config, storage, transport) as worker:
        await worker.install()
        await worker.activate()
        response = await worker.handle(request)

Modules:
    worker: :class:`OfflineWorker`, classifier plus strategy dispatch.
    lifecycle: Install/activate and partition ownership.
    classifier: Navigation / same-origin / cross-origin classification.
    strategies: One response policy per request class.
    background: Deferred cache writes that outlive their request.
    cache: Partition store interface, in-memory and diskcache backends.
    client: httpx-backed network transport and the synthetic offline response.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI standing in for the host runtime.
"""

__version__ = "0.1.0"
