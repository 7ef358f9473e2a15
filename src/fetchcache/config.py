"""Where fetchcache keeps its files, and which settings win.

Directories follow the XDG Base Directory layout on Linux and the BSDs and
collapse into ``~/.fetchcache`` elsewhere:

============  ==============================  ==========================
Purpose       XDG                             Fallback
============  ==============================  ==========================
config        ``$XDG_CONFIG_HOME/fetchcache``  ``~/.fetchcache``
cache root    ``$XDG_CACHE_HOME/fetchcache``   ``~/.fetchcache/cache``
data          ``$XDG_DATA_HOME/fetchcache``    ``~/.fetchcache``
============  ==============================  ==========================

The config directory holds ``config.json`` (a
:class:`~fetchcache.models.GlobalConfig`, replaced atomically on save) and
the default ``policies.txt``. :func:`resolve_config` layers CLI flags and
environment variables over that file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

from fetchcache.exceptions import ConfigError
from fetchcache.models import GlobalConfig, RequestConfig

_APP_NAME = "fetchcache"
_CONFIG_FILENAME = "config.json"
_POLICIES_FILENAME = "policies.txt"

ENV_CACHE_DIR = "FETCHCACHE_CACHE_DIR"
ENV_POLICIES_FILE = "FETCHCACHE_POLICIES_FILE"


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback: str) -> Path:
    """Return (and create) one of the application directories.

    Args:
        xdg_var: XDG variable naming the base directory.
        xdg_default: Base relative to ``$HOME`` when the variable is unset.
        fallback: Subdirectory of ``~/.fetchcache`` on non-XDG platforms;
            ``""`` for ``~/.fetchcache`` itself.
    """
    if _is_xdg_platform():
        base = os.environ.get(xdg_var) or str(Path.home() / xdg_default)
        path = Path(base) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json`` and the default policy file."""
    return _app_dir("XDG_CONFIG_HOME", ".config", "")


def get_cache_dir() -> Path:
    """Default cache root. Entries live in its ``data/`` subdirectory."""
    return _app_dir("XDG_CACHE_HOME", ".cache", "cache")


def get_data_dir() -> Path:
    """Data directory. Crash logs go to its ``logs/`` subdirectory."""
    return _app_dir("XDG_DATA_HOME", os.path.join(".local", "share"), "")


def default_policies_file() -> Path:
    """Return ``<config_dir>/policies.txt``. The file need not exist."""
    return get_config_dir() / _POLICIES_FILENAME


# --- Atomic writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers see the old or new file, never half.

    The text goes to a temporary sibling that is fsynced and then renamed
    over *path*. On failure the temporary file is removed and *path* is left
    untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~fetchcache.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


@dataclass
class ResolvedConfig:
    """Effective settings after precedence resolution.

    Attributes:
        cache_dir: Cache root. Entries are stored in ``cache_dir / "data"``.
        policies_file: Policy source. May not exist.
        default_ttl: TTL of the catch-all policy.
        request: Transport settings.
        global_config: The loaded global config the rest was derived from.
    """

    cache_dir: Path
    policies_file: Path
    default_ttl: timedelta
    request: RequestConfig
    global_config: GlobalConfig


def resolve_config(
    cli_cache_dir: Optional[str] = None,
    cli_policies_file: Optional[str] = None,
) -> ResolvedConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_cache_dir``, ``cli_policies_file``)
        2. Environment variables (``FETCHCACHE_CACHE_DIR``,
           ``FETCHCACHE_POLICIES_FILE``)
        3. User config (``~/.config/fetchcache/config.json``)
        4. Defaults (XDG cache dir, ``<config_dir>/policies.txt``)

    Raises:
        ConfigError: If the global config file is invalid.
    """
    global_cfg = load_global_config()

    cache_dir: Optional[str] = global_cfg.cache.directory
    env_cache_dir = os.environ.get(ENV_CACHE_DIR)
    if env_cache_dir:
        cache_dir = env_cache_dir
    if cli_cache_dir is not None:
        cache_dir = cli_cache_dir

    policies_file: Optional[str] = global_cfg.cache.policies_file
    env_policies = os.environ.get(ENV_POLICIES_FILE)
    if env_policies:
        policies_file = env_policies
    if cli_policies_file is not None:
        policies_file = cli_policies_file

    return ResolvedConfig(
        cache_dir=Path(cache_dir).expanduser() if cache_dir else get_cache_dir(),
        policies_file=(
            Path(policies_file).expanduser() if policies_file else default_policies_file()
        ),
        default_ttl=timedelta(seconds=global_cfg.cache.default_ttl_seconds),
        request=global_cfg.request,
        global_config=global_cfg,
    )
