"""Deferred work that outlives the request that scheduled it.

A strategy may return its response while a cache write is still running.
:class:`BackgroundTasks` holds a strong reference to each such
:class:`asyncio.Task` until it settles, so the event loop never drops it
when the caller stops caring, and :meth:`BackgroundTasks.drain` gives
shutdown code and tests a deterministic barrier to wait on instead of
sleeping.

Every scheduled coroutine resolves to an :class:`~shellcache.models.Outcome`;
an exception escaping one is logged and converted, never re-raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional

from shellcache.models import Outcome

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Registry of in-flight deferred work for one worker.

    Example::

        tasks = BackgroundTasks()
        tasks.wait_until(partition_write(...))
        ...
        outcomes = await tasks.drain()
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Outcome]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def wait_until(
        self, work: Awaitable[Optional[Outcome]], name: Optional[str] = None
    ) -> asyncio.Task[Outcome]:
        """Schedule *work* and keep it alive until it settles.

        Must be called from inside a running event loop.

        Returns:
            The task, which always completes with an :class:`Outcome`.
        """
        task = asyncio.create_task(self._settle(work, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> list[Outcome]:
        """Wait for every scheduled task, including ones scheduled meanwhile."""
        outcomes: list[Outcome] = []
        while self._tasks:
            batch = list(self._tasks)
            outcomes.extend(await asyncio.gather(*batch))
            self._tasks.difference_update(batch)
        return outcomes

    async def _settle(
        self, work: Awaitable[Optional[Outcome]], name: Optional[str]
    ) -> Outcome:
        try:
            result = await work
        except Exception as exc:
            logger.warning("Background task %s failed: %s", name or "<unnamed>", exc)
            return Outcome.failure(exc)
        return result if isinstance(result, Outcome) else Outcome.success()
