"""Network transports the strategies fetch through.

:class:`HttpxTransport` wraps :class:`httpx.AsyncClient` and reduces every
outcome to one of two things: an :class:`httpx.Response` (any status code,
body already read) or a :class:`~shellcache.exceptions.NetworkFailure`.
HTTP error statuses are *not* failures here; deciding what a 404 or 503
means is the strategies' job.

:class:`OfflineTransport` always fails and stands in for airplane mode.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import Optional

import httpx

from shellcache.exceptions import NetworkFailure
from shellcache.models import InterceptedRequest, RequestConfig

logger = logging.getLogger(__name__)


class Transport(abc.ABC):
    """Async ``request -> response | failure``."""

    @abc.abstractmethod
    async def fetch(self, request: InterceptedRequest) -> httpx.Response:
        """Send *request* and return the fully-read response.

        Raises:
            NetworkFailure: If the host could not be reached.
        """

    async def aclose(self) -> None:
        """Release connections. Default: nothing to release."""

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


class HttpxTransport(Transport):
    """Transport backed by :class:`httpx.AsyncClient`.

    Connection-level errors are retried up to ``max_retries`` times with
    exponential backoff (1 s, 2 s, 4 s, ...) before a
    :class:`~shellcache.exceptions.NetworkFailure` is raised. Any other
    :class:`httpx.RequestError` (too many redirects, a body that fails to
    decode) becomes a ``NetworkFailure`` straight away. Timeouts are
    the only bound on a stalled request; the interception layer adds none.

    Args:
        config: Timeout, TLS verification and retry settings.
        transport: Optional low-level httpx transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        async with HttpxTransport(RequestConfig(timeout=10)) as transport:
            response = await transport.fetch(request)
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    async def fetch(self, request: InterceptedRequest) -> httpx.Response:
        max_retries = self._config.max_retries
        for attempt in range(max_retries + 1):
            try:
                return await self._client.request(
                    request.method, request.url, headers=request.headers
                )
            except httpx.RequestError as exc:
                # Redirect loops and undecodable bodies are final; only
                # connection-level errors are worth another attempt.
                if isinstance(exc, httpx.TransportError) and attempt < max_retries:
                    delay = 2 ** attempt
                    logger.debug(
                        "Network error for %s: %s, retrying in %ss (attempt %d/%d)",
                        request.url, exc, delay, attempt + 1, max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise NetworkFailure(
                    f"{request.method} {request.url} failed after {attempt + 1} attempt(s): {exc}"
                ) from exc
        raise NetworkFailure(f"{request.method} {request.url} was not attempted")  # pragma: no cover

    async def aclose(self) -> None:
        await self._client.aclose()


class OfflineTransport(Transport):
    """A transport with no network: every fetch fails."""

    async def fetch(self, request: InterceptedRequest) -> httpx.Response:
        raise NetworkFailure(f"{request.method} {request.url}: offline")
