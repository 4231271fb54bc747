"""Configuration management with XDG paths, atomic writes, and env overrides.

This module handles all persistent configuration for agricache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.agricache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~agricache.models.GlobalConfig`
  JSON file storing cache, store, retry and network settings.
* **Precedence resolution** -- :func:`resolve_config` layers
  ``AGRICACHE_*`` environment variables over the config file and the
  model defaults.
* **Store construction** -- :func:`open_store` builds the configured
  :class:`~agricache.store.base.DurableStore`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from agricache.exceptions import ConfigError
from agricache.models import GlobalConfig, StoreBackend
from agricache.store import DiskStore, DurableStore, MemoryStore

_APP_NAME = "agricache"
_CONFIG_FILENAME = "config.json"

# env var -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "AGRICACHE_CACHE_DIR": ("store", "directory"),
    "AGRICACHE_STORE_BACKEND": ("store", "backend"),
    "AGRICACHE_MAX_SIZE": ("cache", "max_size"),
    "AGRICACHE_DEFAULT_TTL_MS": ("cache", "default_ttl_ms"),
    "AGRICACHE_PROBE_URL": ("network", "probe_url"),
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/agricache/`` (default ``~/.config/agricache/``).
    On macOS/Windows: ``~/.agricache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the on-disk durable store. Its contents can be safely deleted
    at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/agricache/`` (default ``~/.cache/agricache/``).
    On macOS/Windows: ``~/.agricache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/agricache/`` (default ``~/.local/share/agricache/``).
    On macOS/Windows: ``~/.agricache/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure
    the temp file is cleaned up and the error re-raised.
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
        fd = None
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


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~agricache.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
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
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config() -> GlobalConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. Environment variables (``AGRICACHE_CACHE_DIR``,
           ``AGRICACHE_STORE_BACKEND``, ``AGRICACHE_MAX_SIZE``,
           ``AGRICACHE_DEFAULT_TTL_MS``, ``AGRICACHE_PROBE_URL``)
        2. User config (``~/.config/agricache/config.json``)
        3. Defaults

    Raises:
        ConfigError: If the config file or an environment value is invalid.
    """
    config = load_global_config()
    data = config.model_dump(mode="json")

    applied = False
    for env_var, (section, field) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[section][field] = value
            applied = True

    if not applied:
        return config
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid AGRICACHE_* environment value: {exc}") from exc


def open_store(config: GlobalConfig) -> DurableStore:
    """Build the durable store selected by ``config.store``.

    Raises:
        StoreUnavailableError: If the disk store directory cannot be opened.
    """
    store_cfg = config.store
    if store_cfg.backend == StoreBackend.MEMORY:
        return MemoryStore(quota=store_cfg.quota)
    directory = Path(store_cfg.directory) if store_cfg.directory else get_cache_dir()
    return DiskStore(directory, quota=store_cfg.quota)
