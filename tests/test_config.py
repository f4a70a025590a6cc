"""Tests for shellcache.config -- XDG paths, atomic writes, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from shellcache.config import (
    _atomic_write,
    config_path,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    get_partitions_dir,
    load_config_data,
    resolve_config,
    save_config_data,
    save_worker_config,
)
from shellcache.exceptions import ConfigError
from shellcache.models import WorkerConfig


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shellcache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "shellcache"
        assert result.is_dir()

    def test_cache_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_cache"
        monkeypatch.setattr("shellcache.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(custom))

        result = get_cache_dir()
        assert result == custom / "shellcache"
        assert result.is_dir()

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shellcache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".local" / "share" / "shellcache"
        assert result.is_dir()


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shellcache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".shellcache"

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shellcache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_cache_dir() == tmp_path / ".shellcache" / "cache"


class TestPartitionsDir:
    def test_defaults_under_cache_dir(self, isolated_config: Path) -> None:
        config = WorkerConfig(version="v1", origin="https://app.test")
        assert get_partitions_dir(config) == isolated_config / "cache" / "shellcache" / "partitions"

    def test_config_override(self, isolated_config: Path) -> None:
        config = WorkerConfig(version="v1", origin="https://app.test", cache_dir="/srv/partitions")
        assert get_partitions_dir(config) == Path("/srv/partitions")


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        _atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "test.txt"
        _atomic_write(target, "deep write")
        assert target.read_text(encoding="utf-8") == "deep write"

    def test_no_temp_files_left_on_success(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        _atomic_write(target, "content")
        assert list(tmp_path.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        with patch("shellcache.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Config file
# ---------------------------------------------------------------------------


class TestConfigFile:
    def test_missing_file_is_empty(self, isolated_config: Path) -> None:
        assert load_config_data() == {}

    def test_save_and_load(self, isolated_config: Path) -> None:
        save_config_data({"version": "v1", "request": {"timeout": 5}})
        assert load_config_data() == {"version": "v1", "request": {"timeout": 5}}
        assert config_path() == isolated_config / "config" / "shellcache" / "config.json"

    def test_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        path = config_path()
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config_data()

    def test_non_object_raises_config_error(self, isolated_config: Path) -> None:
        config_path().write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigError, match="JSON object"):
            load_config_data()

    def test_save_worker_config_omits_unset_fields(self, isolated_config: Path) -> None:
        save_worker_config(WorkerConfig(version="v1", origin="https://app.test"))
        data = json.loads(config_path().read_text(encoding="utf-8"))
        assert data["version"] == "v1"
        assert data["shell_assets"] == ["/", "/index.html"]
        assert "cache_dir" not in data


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_from_file(self, isolated_config: Path) -> None:
        save_config_data({"version": "v1", "origin": "https://app.test"})
        config = resolve_config()
        assert config.version == "v1"
        assert config.origin == "https://app.test"

    def test_env_overrides_file(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_config_data({"version": "v1", "origin": "https://app.test"})
        monkeypatch.setenv("SHELLCACHE_VERSION", "v2")
        monkeypatch.setenv("SHELLCACHE_CACHE_DIR", "/tmp/parts")
        config = resolve_config()
        assert config.version == "v2"
        assert config.cache_dir == "/tmp/parts"

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SHELLCACHE_VERSION", "v2")
        monkeypatch.setenv("SHELLCACHE_ORIGIN", "https://env.test")
        config = resolve_config(cli_version="v3", cli_origin="https://cli.test")
        assert config.version == "v3"
        assert config.origin == "https://cli.test"

    def test_file_keeps_other_fields(self, isolated_config: Path) -> None:
        save_config_data(
            {"origin": "https://app.test", "shell_assets": ["/", "/index.html", "/app.css"]}
        )
        config = resolve_config(cli_version="v1")
        assert config.shell_assets[-1] == "/app.css"

    def test_missing_version(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="No worker version"):
            resolve_config(cli_origin="https://app.test")

    def test_missing_origin(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="No origin"):
            resolve_config(cli_version="v1")

    def test_invalid_values_raise_config_error(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid worker config"):
            resolve_config(cli_version="v 1", cli_origin="https://app.test")
