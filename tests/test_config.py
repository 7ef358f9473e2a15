"""Tests for fetchcache.config: XDG paths, atomic writes, global config, precedence."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from fetchcache.config import (
    _atomic_write,
    default_policies_file,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    global_config_path,
    load_global_config,
    resolve_config,
    save_global_config,
)
from fetchcache.exceptions import ConfigError
from fetchcache.models import GlobalConfig


def _write_config(data: dict) -> None:
    path = global_config_path()
    path.write_text(json.dumps(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# Directory layout
# ---------------------------------------------------------------------------


class TestXDGPaths:
    """Directories on XDG platforms honour the XDG_* variables."""

    def test_default_locations(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("fetchcache.config._is_xdg_platform", lambda: True)
        for var in ("XDG_CONFIG_HOME", "XDG_CACHE_HOME", "XDG_DATA_HOME"):
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".config" / "fetchcache"
        assert get_cache_dir() == tmp_path / ".cache" / "fetchcache"
        assert get_data_dir() == tmp_path / ".local" / "share" / "fetchcache"

    def test_custom_locations(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "fetchcache"
        assert get_cache_dir() == isolated_config / "cache" / "fetchcache"
        assert get_data_dir() == isolated_config / "data" / "fetchcache"
        assert get_cache_dir().is_dir()

    def test_default_policies_file(self, isolated_config: Path) -> None:
        assert default_policies_file() == get_config_dir() / "policies.txt"


class TestFallbackPaths:
    """Non-XDG platforms keep everything under ~/.fetchcache."""

    def test_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("fetchcache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".fetchcache"
        assert get_cache_dir() == tmp_path / ".fetchcache" / "cache"
        assert get_data_dir() == tmp_path / ".fetchcache"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_and_replaces(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "config.json"
        _atomic_write(target, "first")
        _atomic_write(target, "second")
        assert target.read_text(encoding="utf-8") == "second"
        assert list(target.parent.iterdir()) == [target]

    def test_failure_leaves_no_temp_file(self, tmp_path: Path) -> None:
        target = tmp_path / "config.json"
        target.write_text("original", encoding="utf-8")
        with patch("fetchcache.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "replacement")
        assert target.read_text(encoding="utf-8") == "original"
        assert [f for f in tmp_path.iterdir() if ".tmp" in f.name] == []


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        assert load_global_config() == GlobalConfig()

    def test_save_and_load(self, isolated_config: Path) -> None:
        cfg = GlobalConfig()
        cfg.cache.policies_file = "/etc/fetchcache/policies.txt"
        cfg.request.timeout = 5
        save_global_config(cfg)

        loaded = load_global_config()
        assert loaded.cache.policies_file == "/etc/fetchcache/policies.txt"
        assert loaded.request.timeout == 5
        assert json.loads(global_config_path().read_text(encoding="utf-8"))

    def test_invalid_json(self, isolated_config: Path) -> None:
        global_config_path().write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_invalid_schema(self, isolated_config: Path) -> None:
        _write_config({"request": {"max_retries": -1}})
        with pytest.raises(ConfigError):
            load_global_config()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        resolved = resolve_config()
        assert resolved.cache_dir == get_cache_dir()
        assert resolved.policies_file == default_policies_file()
        assert resolved.default_ttl == timedelta(minutes=10)
        assert resolved.request.max_retries == 0

    def test_config_file(self, isolated_config: Path) -> None:
        _write_config({
            "cache": {
                "directory": str(isolated_config / "from-config"),
                "policies_file": str(isolated_config / "config-policies.txt"),
                "default_ttl_seconds": 60,
            },
            "request": {"max_retries": 2},
        })
        resolved = resolve_config()
        assert resolved.cache_dir == isolated_config / "from-config"
        assert resolved.policies_file == isolated_config / "config-policies.txt"
        assert resolved.default_ttl == timedelta(seconds=60)
        assert resolved.request.max_retries == 2

    def test_env_beats_config_file(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_config({"cache": {"directory": "/from/config", "policies_file": "/from/config.txt"}})
        monkeypatch.setenv("FETCHCACHE_CACHE_DIR", str(isolated_config / "env"))
        monkeypatch.setenv("FETCHCACHE_POLICIES_FILE", str(isolated_config / "env.txt"))

        resolved = resolve_config()
        assert resolved.cache_dir == isolated_config / "env"
        assert resolved.policies_file == isolated_config / "env.txt"

    def test_cli_beats_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FETCHCACHE_CACHE_DIR", "/from/env")
        monkeypatch.setenv("FETCHCACHE_POLICIES_FILE", "/from/env.txt")

        resolved = resolve_config(
            cli_cache_dir=str(isolated_config / "cli"),
            cli_policies_file=str(isolated_config / "cli.txt"),
        )
        assert resolved.cache_dir == isolated_config / "cli"
        assert resolved.policies_file == isolated_config / "cli.txt"

    def test_empty_env_ignored(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FETCHCACHE_CACHE_DIR", "")
        assert resolve_config().cache_dir == get_cache_dir()

    def test_home_expanded(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", str(isolated_config))
        resolved = resolve_config(cli_cache_dir="~/mycache")
        assert resolved.cache_dir == isolated_config / "mycache"

    def test_invalid_config_file_raises(self, isolated_config: Path) -> None:
        global_config_path().write_text("[]", encoding="utf-8")
        with pytest.raises(ConfigError):
            resolve_config()
