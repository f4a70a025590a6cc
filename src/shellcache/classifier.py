"""Request classification -- which strategy answers an intercepted request.

:func:`classify` is a pure function of the request and the worker's origin.
Rules, first match wins:

1. non-GET -- ``None``: not intercepted, the host's default handling applies
2. navigation mode -- :attr:`RequestClass.NAVIGATION`
3. same origin as the worker -- :attr:`RequestClass.SAME_ORIGIN`
4. anything else -- :attr:`RequestClass.CROSS_ORIGIN`
"""

from __future__ import annotations

from typing import Optional

from shellcache.models import InterceptedRequest, RequestClass, origin_of


def classify(request: InterceptedRequest, origin: str) -> Optional[RequestClass]:
    """Return the dispatch class of *request*, or ``None`` to pass it through.

    Args:
        request: The intercepted request.
        origin: The worker's own origin (``scheme://host[:port]``); any URL
            on that origin is accepted too.
    """
    if request.method != "GET":
        return None
    if request.is_navigation:
        return RequestClass.NAVIGATION
    if request.origin == origin_of(origin):
        return RequestClass.SAME_ORIGIN
    return RequestClass.CROSS_ORIGIN
