"""Terminal output for the shellcache CLI.

Two streams, never mixed:

* **stdout** -- what a command produces: response bodies, install and
  activate reports, partition tables. Safe to pipe into ``jq``.
* **stderr** -- everything said *about* the work: HTTP status lines,
  warnings, errors, and records from the library loggers.

The format is JSON, plain tab-separated text, or Rich. ``AUTO`` picks Rich
for an interactive terminal and plain text otherwise. Colour is off under
``--no-color``, ``NO_COLOR`` or ``TERM=dumb``.

Library modules never print. They log to ``logging.getLogger(__name__)``
and :meth:`OutputManager.configure_logging` decides what reaches stderr.
Commands use the module-level helpers (:func:`info`, :func:`warning`, ...),
which go through the :class:`OutputManager` installed by
:func:`~shellcache.app.main_callback`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

LOGGER_NAME = "shellcache"

_HANDLER_MARK = "_shellcache_handler"


class OutputFormat(str, Enum):
    """How data written to stdout is rendered."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Holds the output preferences for one CLI invocation.

    Args:
        format: Rendering for stdout data; ``AUTO`` is resolved once, here.
        no_color: Strip colour and Rich markup everywhere.
        quiet: Drop informational and success messages. Warnings, errors
            and stdout data are kept.
        verbose: Show debug messages and DEBUG log records.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format != OutputFormat.AUTO:
            self._format = format
        elif _is_tty() and not self._no_color:
            self._format = OutputFormat.RICH
        else:
            self._format = OutputFormat.PLAIN

        rich = self._format == OutputFormat.RICH
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    def configure_logging(self) -> logging.Logger:
        """Route ``shellcache.*`` log records to stderr.

        The level follows the flags: DEBUG with ``--verbose``, ERROR with
        ``--quiet``, WARNING otherwise. A handler installed by an earlier
        call is replaced, not duplicated.
        """
        logger = logging.getLogger(LOGGER_NAME)
        for old in [h for h in logger.handlers if getattr(h, _HANDLER_MARK, False)]:
            logger.removeHandler(old)

        handler: logging.Handler
        if self._no_color:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        else:
            handler = RichHandler(console=self._stderr, show_time=False, show_path=False)
        setattr(handler, _HANDLER_MARK, True)

        if self._verbose:
            logger.setLevel(logging.DEBUG)
        elif self._quiet:
            logger.setLevel(logging.ERROR)
        else:
            logger.setLevel(logging.WARNING)
        logger.addHandler(handler)
        logger.propagate = False
        return logger

    # --- stdout ---

    def format_response(self, data: Any, content_type: str = "application/json") -> None:
        """Write *data* to stdout in the active format.

        *content_type* only matters for Rich, where it selects highlighting
        for HTML bodies.
        """
        if self._format == OutputFormat.JSON:
            self._write_json(data)
        elif self._format == OutputFormat.PLAIN:
            self._write_plain(data)
        else:
            self._write_rich(data, content_type)

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows to stdout: JSON records, TSV lines, or a Rich table.

        *title* is shown by the Rich table only.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # --- stderr ---

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self._diagnostic(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self._diagnostic(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")

    def _diagnostic(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)

    # --- renderers ---

    def _write_json(self, data: Any) -> None:
        if isinstance(data, str):
            # Bodies that are already JSON are re-indented, anything else is quoted.
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                self.print_data(json.dumps(data, ensure_ascii=False))
                return
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def _write_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    item = "\t".join(str(v) for v in item.values())
                self.print_data(str(item))
        else:
            self.print_data(str(data))

    def _write_rich(self, data: Any, content_type: str) -> None:
        if isinstance(data, (dict, list)):
            text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        elif isinstance(data, str) and "html" in content_type:
            self._stdout.print(Syntax(data, "html", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data), markup=False, highlight=False)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# --- global instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the next :func:`get_output` builds a fresh one."""
    global _output
    _output = None


def format_response(data: Any, content_type: str = "application/json") -> None:
    get_output().format_response(data, content_type)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def debug(message: str) -> None:
    get_output().debug(message)
