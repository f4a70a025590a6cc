"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for shellcache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.shellcache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Worker config file** -- ``<config_dir>/config.json``, a possibly
  partial set of :class:`~shellcache.models.WorkerConfig` fields. Read with
  :func:`load_config_data`, written with :func:`save_config_data`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the config file into a validated
  :class:`~shellcache.models.WorkerConfig`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from shellcache.exceptions import ConfigError
from shellcache.models import WorkerConfig

_APP_NAME = "shellcache"
_CONFIG_FILENAME = "config.json"

ENV_VERSION = "SHELLCACHE_VERSION"
ENV_ORIGIN = "SHELLCACHE_ORIGIN"
ENV_CACHE_DIR = "SHELLCACHE_CACHE_DIR"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/shellcache/`` (default ``~/.config/shellcache/``).
    On macOS/Windows: ``~/.shellcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Partitions live under ``<cache_dir>/partitions/`` unless the worker
    config overrides the location.

    On Linux/BSD: ``$XDG_CACHE_HOME/shellcache/`` (default ``~/.cache/shellcache/``).
    On macOS/Windows: ``~/.shellcache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/shellcache/`` (default ``~/.local/share/shellcache/``).
    On macOS/Windows: ``~/.shellcache/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_partitions_dir(config: WorkerConfig) -> Path:
    """Return the partition storage root for *config*."""
    if config.cache_dir:
        return Path(config.cache_dir).expanduser()
    return get_cache_dir() / "partitions"


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Worker config file ---


def config_path() -> Path:
    """Path to the worker config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config_data() -> dict[str, Any]:
    """Load the raw worker config mapping from disk.

    Returns:
        The stored fields, or an empty dict when no file exists. The data
        may be partial; :func:`resolve_config` validates the merged result.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = config_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def save_config_data(data: dict[str, Any]) -> None:
    """Persist a worker config mapping atomically."""
    _atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


def save_worker_config(config: WorkerConfig) -> None:
    """Persist a complete, validated :class:`WorkerConfig`."""
    save_config_data(config.model_dump(mode="json", exclude_none=True))


# --- Precedence resolution ---


def resolve_config(
    cli_version: Optional[str] = None,
    cli_origin: Optional[str] = None,
    cli_cache_dir: Optional[str] = None,
) -> WorkerConfig:
    """Resolve the worker config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``--worker-version``, ``--origin``, ``--cache-dir``)
        2. Environment variables (``SHELLCACHE_VERSION``,
           ``SHELLCACHE_ORIGIN``, ``SHELLCACHE_CACHE_DIR``)
        3. User config (``~/.config/shellcache/config.json``)
        4. Model defaults

    Raises:
        ConfigError: If no version or origin is set anywhere, or the merged
            values fail validation.
    """
    data = load_config_data()

    for field, env_var, cli_value in (
        ("version", ENV_VERSION, cli_version),
        ("origin", ENV_ORIGIN, cli_origin),
        ("cache_dir", ENV_CACHE_DIR, cli_cache_dir),
    ):
        env_value = os.environ.get(env_var)
        if env_value:
            data[field] = env_value
        if cli_value is not None:
            data[field] = cli_value

    if not data.get("version"):
        raise ConfigError(
            f"No worker version configured (use --worker-version, ${ENV_VERSION}, "
            "or 'shellcache config set version ...')"
        )
    if not data.get("origin"):
        raise ConfigError(
            f"No origin configured (use --origin, ${ENV_ORIGIN}, "
            "or 'shellcache config set origin ...')"
        )

    try:
        return WorkerConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid worker config: {exc}") from exc
