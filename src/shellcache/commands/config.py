"""Config commands -- view and modify the worker configuration.

Provides the ``shellcache config`` sub-command group for reading, updating,
and resetting ``config.json`` in the shellcache config directory. The file
may hold a partial :class:`~shellcache.models.WorkerConfig`; flags and
environment variables fill in the rest at run time.
"""

from __future__ import annotations

import json
from typing import Any

import typer

from shellcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)

# Fields whose values are always kept as strings, never JSON-decoded.
_STRING_FIELDS = frozenset({"version", "origin", "boot_document", "root_document", "cache_dir"})


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    resolved: bool = typer.Option(
        False, "--resolved", help="Show the effective config after flags and env vars."
    ),
) -> None:
    """Show the stored (or, with --resolved, the effective) configuration.

    Example::

        shellcache config show
        shellcache --worker-version v2 config show --resolved --json
    """
    from shellcache.config import config_path, load_config_data, resolve_config

    info(f"Config file: {config_path()}")
    if resolved:
        obj = ctx.obj or {}
        config = resolve_config(
            cli_version=obj.get("worker_version"),
            cli_origin=obj.get("origin"),
            cli_cache_dir=obj.get("cache_dir"),
        )
        format_response(config.model_dump(mode="json"))
    else:
        format_response(load_config_data())


def _coerce(key: str, value: str) -> Any:
    if key.split(".")[-1] in _STRING_FIELDS:
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g. 'request.timeout')."
    ),
    value: str = typer.Argument(help="Value to set (JSON for lists, numbers and booleans)."),
) -> None:
    """Set a configuration value.

    Non-string fields take JSON values, so lists and numbers work as
    expected. Once both ``version`` and ``origin`` are stored, the whole
    file is validated against :class:`~shellcache.models.WorkerConfig`
    before saving.

    Example::

        shellcache config set version v88
        shellcache config set origin https://app.example.com
        shellcache config set shell_assets '["/", "/index.html", "/app.css"]'
        shellcache config set request.timeout 10
    """
    from shellcache.config import load_config_data, save_config_data
    from shellcache.models import RequestConfig, WorkerConfig

    known = set(WorkerConfig.model_fields)
    keys = key.split(".")
    if keys[0] not in known:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)
    if len(keys) > 2 or (len(keys) == 2 and (
        keys[0] != "request" or keys[1] not in RequestConfig.model_fields
    )):
        error(f"Invalid config key: {key}")
        raise typer.Exit(code=2)

    data = load_config_data()
    coerced = _coerce(key, value)
    if keys == ["request"] and not isinstance(coerced, dict):
        error(f"request must be a JSON object, got: {value}")
        raise typer.Exit(code=2)
    if len(keys) == 2:
        section = data.setdefault(keys[0], {})
        if not isinstance(section, dict):
            error(f"Stored {keys[0]} is not an object; run 'shellcache config set {keys[0]} {{}}' first")
            raise typer.Exit(code=2)
        section[keys[1]] = coerced
    else:
        data[keys[0]] = coerced

    if data.get("version") and data.get("origin"):
        try:
            WorkerConfig.model_validate(data)
        except ValueError as exc:
            error(f"Validation error: {exc}")
            raise typer.Exit(code=2) from None

    save_config_data(data)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Remove every stored setting.

    Example::

        shellcache config reset --force
    """
    from shellcache.config import save_config_data

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_config_data({})
    success("Configuration reset to defaults.")
