"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~shellcache.exceptions.ShellcacheError` subclass.
Shell wrappers and deployment scripts can inspect the exit code to tell a
bad invocation from an unreachable network without parsing stderr.

Example::

    $ shellcache fetch https://cdn.example.net/lib.js
    $ echo $?
    6   # EXIT_NETWORK_FAILURE -- the transport could not reach the host
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_CONFIG_ERROR = 3
"""The worker configuration is missing, unreadable, or fails validation."""

EXIT_CACHE_ERROR = 5
"""A cache partition could not be opened, read, written, or deleted."""

EXIT_NETWORK_FAILURE = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
