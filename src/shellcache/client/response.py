"""Response helpers -- the synthetic offline response and CLI rendering.

:func:`unavailable_response` builds the one response the layer invents on
its own: status ``504``, reason ``Offline``, empty body. Applications treat
it as "offline, no cached copy".

:func:`format_fetch_response` routes an intercepted response through the
global :class:`~shellcache.output.OutputManager` for ``shellcache fetch``.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from shellcache.output import get_output

UNAVAILABLE_STATUS = 504
UNAVAILABLE_REASON = "Offline"


def unavailable_response(request: Optional[httpx.Request] = None) -> httpx.Response:
    """Return a fresh synthetic ``504 Offline`` response with an empty body."""
    return httpx.Response(
        status_code=UNAVAILABLE_STATUS,
        content=b"",
        request=request,
        extensions={"reason_phrase": UNAVAILABLE_REASON.encode("ascii")},
    )


def is_unavailable(response: httpx.Response) -> bool:
    """Whether *response* is the synthetic offline response."""
    return (
        response.status_code == UNAVAILABLE_STATUS
        and response.reason_phrase == UNAVAILABLE_REASON
        and not response.content
    )


def format_fetch_response(response: httpx.Response, request_class: str) -> None:
    """Print an intercepted response using the global output system.

    Writes the status line and the class the request was dispatched as to
    stderr, then renders the body to stdout.

    Args:
        response: The response the worker produced.
        request_class: The :class:`~shellcache.models.RequestClass` value.
    """
    output = get_output()
    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''} ({request_class})")

    content_type = response.headers.get("content-type", "text/plain")
    data = extract_response_data(response)
    if data is not None:
        output.format_response(data, content_type)


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first. If that fails (e.g. the
    response is HTML or plain text), returns the raw text. Returns
    ``None`` for responses with no content.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        pass

    return response.text
