"""Canonical Pydantic models shared across all shellcache modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`RequestConfig` and :class:`WorkerConfig`.

**Interception models** -- what flows through the classifier and the
strategies: :class:`RequestMode`, :class:`RequestClass`,
:class:`InterceptedRequest` and :class:`CacheEntry`.

**Lifecycle results** -- :class:`Outcome`, :class:`InstallReport`,
:class:`ActivateReport` and :class:`GenerationState`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
import re
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Hop-by-hop and encoding headers that no longer describe a stored body.
# httpx has already decoded the content by the time it is cached.
_UNSTORED_HEADERS = frozenset(
    {"content-encoding", "content-length", "transfer-encoding", "connection"}
)

PARTITION_NAME_PATTERN = re.compile(r"[A-Za-z0-9._-]+")


def origin_of(url: str) -> str:
    """Return the ``scheme://host[:port]`` origin of an absolute URL.

    Default ports are omitted so that ``https://a.test`` and
    ``https://a.test:443`` compare equal.

    Raises:
        ValueError: If *url* is not an absolute http(s) URL.
    """
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ValueError(f"Invalid URL {url!r}: {exc}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValueError(f"Not an absolute http(s) URL: {url!r}")
    origin = f"{parsed.scheme}://{parsed.host}"
    if parsed.port is not None:
        origin += f":{parsed.port}"
    return origin


def normalize_url(url: str) -> str:
    """Return *url* in the one spelling used for classification and cache keys.

    The default port and the fragment are dropped and an empty path becomes
    ``/``: ``https://a.test:443#top`` and ``https://a.test/`` are the same
    resource.

    Raises:
        ValueError: If *url* is not an absolute http(s) URL.
    """
    return origin_of(url) + httpx.URL(url).raw_path.decode("ascii")


def _request_url(response: httpx.Response) -> str:
    try:
        return str(response.request.url)
    except RuntimeError:
        return ""


def request_key(method: str, url: str) -> str:
    """Build the cache key for a request: ``"GET https://host/path"``."""
    return f"{method.upper()} {url}"


# --- Configuration ---


class RequestConfig(BaseModel):
    """Network transport settings embedded in :class:`WorkerConfig`."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    max_retries: int = Field(
        default=0, ge=0, description="Retries on connection errors before failing"
    )


class WorkerConfig(BaseModel):
    """Configuration of one interception-layer generation.

    ``version`` is the sole deployment-controlled parameter: bumping it makes
    every partition of the previous version eligible for deletion on the next
    activation. The remaining fields describe the host application.

    Persisted at ``~/.config/shellcache/config.json`` by
    :func:`~shellcache.config.save_worker_config`; see
    :func:`~shellcache.config.resolve_config` for precedence.

    Example::

        WorkerConfig(version="v1", origin="https://app.example.com")
    """

    version: str = Field(min_length=1, description="Deployment generation tag")
    origin: str = Field(description="Origin the layer runs under, e.g. https://app.test")
    shell_assets: list[str] = Field(
        default_factory=lambda: ["/", "/index.html"],
        description="Paths pre-cached into the shell partition at install",
    )
    boot_document: str = Field(
        default="/index.html", description="Shell key refreshed by navigations"
    )
    root_document: str = Field(
        default="/", description="Secondary offline fallback for navigations"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache_dir: Optional[str] = Field(
        default=None, description="Partition storage root (defaults to the XDG cache dir)"
    )

    @field_validator("version")
    @classmethod
    def _version_is_name_safe(cls, value: str) -> str:
        # Versions end up in partition names, which the disk backend uses as directories.
        if not PARTITION_NAME_PATTERN.fullmatch(value):
            raise ValueError(
                f"version may only contain letters, digits, '.', '_' and '-': {value!r}"
            )
        return value

    @field_validator("origin")
    @classmethod
    def _normalise_origin(cls, value: str) -> str:
        origin = origin_of(value)
        path = httpx.URL(value).path
        if path not in ("", "/"):
            raise ValueError(f"origin must not carry a path: {value!r}")
        return origin

    @field_validator("shell_assets")
    @classmethod
    def _dedupe_assets(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("shell_assets must not be empty")
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def _documents_are_shell_assets(self) -> WorkerConfig:
        for name in ("boot_document", "root_document"):
            document = getattr(self, name)
            if document not in self.shell_assets:
                raise ValueError(f"{name} {document!r} is not in shell_assets")
        return self

    def resolve(self, path: str) -> str:
        """Resolve *path* against :attr:`origin` into an absolute URL."""
        return normalize_url(str(httpx.URL(self.origin).join(path)))

    @property
    def shell_urls(self) -> list[str]:
        """The shell asset set as absolute URLs, in declaration order."""
        return [self.resolve(path) for path in self.shell_assets]

    @property
    def boot_key(self) -> str:
        return request_key("GET", self.resolve(self.boot_document))

    @property
    def root_key(self) -> str:
        return request_key("GET", self.resolve(self.root_document))


# --- Interception ---


class RequestMode(str, enum.Enum):
    """Fetch mode of an intercepted request, as reported by the host."""

    NAVIGATE = "navigate"
    SAME_ORIGIN = "same-origin"
    NO_CORS = "no-cors"
    CORS = "cors"


class RequestClass(str, enum.Enum):
    """Dispatch class assigned by :func:`~shellcache.classifier.classify`."""

    NAVIGATION = "navigation"
    SAME_ORIGIN = "same_origin"
    CROSS_ORIGIN = "cross_origin"


class InterceptedRequest(BaseModel):
    """A request handed to the layer by the host runtime.

    Example::

        InterceptedRequest(url="https://app.test/", mode=RequestMode.NAVIGATE)
    """

    method: str = "GET"
    url: str
    mode: RequestMode = RequestMode.NO_CORS
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper()

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        return normalize_url(value)

    @property
    def is_navigation(self) -> bool:
        return self.mode == RequestMode.NAVIGATE

    @property
    def origin(self) -> str:
        return origin_of(self.url)

    @property
    def key(self) -> str:
        return request_key(self.method, self.url)


class CacheEntry(BaseModel):
    """A stored response: the value half of a partition's key -> entry map.

    Entries are replaced wholesale on every write; there is no expiry.
    """

    url: str
    status_code: int
    reason_phrase: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @classmethod
    def from_response(cls, response: httpx.Response) -> CacheEntry:
        """Snapshot an already-read :class:`httpx.Response`."""
        headers = {
            k: v for k, v in response.headers.items() if k.lower() not in _UNSTORED_HEADERS
        }
        return cls(
            url=_request_url(response),
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            headers=headers,
            body=response.content,
        )

    def to_response(self) -> httpx.Response:
        """Rebuild an :class:`httpx.Response` carrying this entry's content."""
        extensions = {}
        if self.reason_phrase:
            extensions["reason_phrase"] = self.reason_phrase.encode("ascii", errors="ignore")
        return httpx.Response(
            status_code=self.status_code,
            headers=self.headers,
            content=self.body,
            request=httpx.Request("GET", self.url) if self.url else None,
            extensions=extensions,
        )


# --- Lifecycle results ---


class Outcome(BaseModel):
    """Result of an operation whose failure is deliberately non-fatal.

    Cache writes and partition deletions return one of these instead of
    raising. Callers decide explicitly whether to look at it; the
    interception path always discards it.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> Outcome:
        return cls(ok=True)

    @classmethod
    def failure(cls, exc: BaseException) -> Outcome:
        return cls(ok=False, error=f"{type(exc).__name__}: {exc}")


class GenerationState(str, enum.Enum):
    """Lifecycle position of a generation."""

    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"


class InstallReport(BaseModel):
    """What :meth:`~shellcache.lifecycle.LifecycleManager.install` did."""

    version: str
    partition: str
    cached: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    skip_waiting: bool = True

    @property
    def complete(self) -> bool:
        return self.error is None


class ActivateReport(BaseModel):
    """What :meth:`~shellcache.lifecycle.LifecycleManager.activate` did."""

    version: str
    deleted: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    enumeration_error: Optional[str] = None
    claimed: list[str] = Field(default_factory=list)
