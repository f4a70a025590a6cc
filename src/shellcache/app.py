"""Typer application factory and CLI entry point for shellcache.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``install``, ``activate``, ``fetch``, ``partitions``
and the ``config`` group).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~shellcache.exceptions.ShellcacheError` exits with the error's
code; anything else is written to a crash log under the data directory.

See Also:
    :mod:`shellcache.config`: Worker configuration resolution.
    :mod:`shellcache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from shellcache import __version__
from shellcache.commands.config import config_app
from shellcache.commands.worker import (
    activate_command,
    fetch_command,
    install_command,
    partitions_command,
)
from shellcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="shellcache",
    help="Offline-first request interception with versioned cache partitions.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("install")(install_command)
app.command("activate")(activate_command)
app.command("fetch")(fetch_command)
app.command("partitions")(partitions_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"shellcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    worker_version: Optional[str] = typer.Option(
        None, "--worker-version", "-w", help="Deployment version tag of the worker."
    ),
    origin: Optional[str] = typer.Option(
        None, "--origin", help="Origin the worker serves, e.g. https://app.example.com."
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Partition storage directory."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~shellcache.output.OutputManager` and the
    ``shellcache`` logger from CLI flags, and stores the config overrides in
    the Typer context for the sub-commands to resolve.
    """
    from shellcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    output.configure_logging()

    ctx.ensure_object(dict)
    ctx.obj["worker_version"] = worker_version
    ctx.obj["origin"] = origin
    ctx.obj["cache_dir"] = cache_dir
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from shellcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``shellcache`` console script.

    Unhandled :class:`~shellcache.exceptions.ShellcacheError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from shellcache.exceptions import ShellcacheError
        from shellcache.output import error

        if isinstance(exc, ShellcacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
