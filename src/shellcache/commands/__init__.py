"""Built-in CLI commands for shellcache.

* :mod:`~shellcache.commands.worker` -- ``install``, ``activate``,
  ``fetch`` and ``partitions``, which drive an
  :class:`~shellcache.worker.OfflineWorker` against on-disk partitions.
* :mod:`~shellcache.commands.config` -- the ``config`` group for viewing
  and editing the stored worker configuration.

Each module exposes Typer callables that :mod:`shellcache.app` registers on
the root application.
"""
