"""Network side of shellcache.

Classes:
    :class:`Transport` -- the async ``fetch(request)`` interface.
    :class:`HttpxTransport` -- backed by :class:`httpx.AsyncClient`.
    :class:`OfflineTransport` -- always raises
    :class:`~shellcache.exceptions.NetworkFailure`.

Functions:
    :func:`unavailable_response` -- the synthetic ``504 Offline`` response.

Example::

    from shellcache.client import HttpxTransport

    async with HttpxTransport(config.request) as transport:
        response = await transport.fetch(request)
"""

from shellcache.client.response import is_unavailable, unavailable_response
from shellcache.client.transport import HttpxTransport, OfflineTransport, Transport

__all__ = [
    "HttpxTransport",
    "OfflineTransport",
    "Transport",
    "is_unavailable",
    "unavailable_response",
]
