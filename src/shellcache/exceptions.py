"""Exception hierarchy for shellcache.

All exceptions inherit from :class:`ShellcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`shellcache.exit_codes`.

Inside the interception layer most of these never reach a caller: network
failures are turned into cache fallbacks or a synthetic ``504`` response,
and cache write or partition failures are folded into
:class:`~shellcache.models.Outcome` values. They surface only from the
CLI, where :func:`shellcache.app.main` maps them to exit codes.

Subclass hierarchy::

    ShellcacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 3)
    +-- CacheError          (exit 5)
    |   +-- CacheWriteError
    |   +-- PartitionError
    +-- NetworkFailure      (exit 6)
"""

from shellcache.exit_codes import (
    EXIT_CACHE_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_FAILURE,
)


class ShellcacheError(Exception):
    """Base exception for all shellcache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ShellcacheError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ShellcacheError):
    """Raised for configuration problems (missing version or origin, invalid JSON)."""

    exit_code = EXIT_CONFIG_ERROR


class CacheError(ShellcacheError):
    """Base class for failures of the partition store."""

    exit_code = EXIT_CACHE_ERROR


class CacheWriteError(CacheError):
    """Raised when an entry cannot be stored (partition unavailable, quota exceeded)."""


class PartitionError(CacheError):
    """Raised when partitions cannot be enumerated, opened, or deleted."""


class NetworkFailure(ShellcacheError):
    """Raised by the transport on network-level failures.

    Covers connection refused, DNS resolution, timeouts and dropped
    connections. An HTTP error *status* is not a network failure: the
    transport returns such responses normally.
    """

    exit_code = EXIT_NETWORK_FAILURE
