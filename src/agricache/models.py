"""Canonical Pydantic models shared across all agricache modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`StoreConfig`, :class:`RetryConfig`,
    :class:`NetworkConfig`, :class:`OutputConfig` and :class:`GlobalConfig`.

**Cache records** -- what the cache engine writes to and reports about the
durable store:
    :class:`CacheEntry`, :class:`EntryInfo` and :class:`CacheStats`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, Field, StrictInt

# --- Defaults ---

MINUTE_MS = 60 * 1000
"""One minute in milliseconds."""

DEFAULT_PREFIX = "agri_compass_cache_"
"""Namespace prefix reserved for the cache engine inside the durable store."""

DEFAULT_TTL_MS = 5 * MINUTE_MS
"""Default entry lifetime (5 minutes)."""

MAX_CACHE_SIZE = 50 * 1024 * 1024
"""Capacity of the cache namespace, in UTF-16 code units of key + value text."""

EVICTION_RATIO = 0.8
"""Fraction of ``max_size`` the capacity policy frees down to."""

WEATHER_TTL_MS = 30 * MINUTE_MS
FORECAST_TTL_MS = 120 * MINUTE_MS
FEED_TTL_MS = 10 * MINUTE_MS


# --- Cache records ---


class CacheEntry(BaseModel):
    """A single cached value as it is stored in the durable store.

    Serialised to JSON text as ``{"data": ..., "timestamp": ..., "ttl": ...}``.
    Entries are replaced whole on every write and never patched in place.

    Attributes:
        data: The cached payload. Must be JSON serialisable.
        timestamp: Write time in milliseconds since the epoch.
        ttl: Lifetime in milliseconds.
    """

    data: Any = None
    timestamp: StrictInt
    ttl: StrictInt

    def is_expired(self, now: int) -> bool:
        """Return ``True`` once more than :attr:`ttl` ms have passed since the write."""
        return now - self.timestamp > self.ttl

    def expires_in(self, now: int) -> int:
        """Milliseconds of life left at *now*; negative once expired."""
        return self.timestamp + self.ttl - now


class EntryInfo(BaseModel):
    """One namespace entry as listed by :meth:`CacheEngine.entries`.

    Attributes:
        key: Logical key, without the namespace prefix.
        size: Key + value size in UTF-16 code units.
        expires_in_ms: Remaining lifetime, negative when expired and
            ``None`` when the stored text is not a valid entry.
    """

    key: str
    size: int
    expires_in_ms: Optional[int] = None


class CacheStats(BaseModel):
    """Snapshot of the cache namespace returned by :meth:`CacheEngine.stats`."""

    prefix: str
    entries: int
    size: int
    max_size: int
    default_ttl_ms: int

    @property
    def usage(self) -> float:
        """Fraction of ``max_size`` currently occupied."""
        if self.max_size <= 0:
            return 0.0
        return self.size / self.max_size


# --- Configuration ---


class StoreBackend(str, enum.Enum):
    """Durable store implementations selectable from configuration."""

    DISK = "disk"
    MEMORY = "memory"


class CacheConfig(BaseModel):
    """Cache engine settings stored in :class:`GlobalConfig`."""

    prefix: str = Field(default=DEFAULT_PREFIX, description="Namespace key prefix")
    default_ttl_ms: int = Field(
        default=DEFAULT_TTL_MS, ge=0, description="TTL applied when set() gets none"
    )
    max_size: int = Field(
        default=MAX_CACHE_SIZE, gt=0, description="Capacity in UTF-16 code units"
    )
    eviction_ratio: float = Field(
        default=EVICTION_RATIO,
        gt=0,
        le=1,
        description="Eviction frees the namespace down to max_size * ratio",
    )


class StoreConfig(BaseModel):
    """Durable store selection stored in :class:`GlobalConfig`."""

    backend: StoreBackend = Field(default=StoreBackend.DISK)
    directory: Optional[str] = Field(
        default=None, description="Disk store directory (defaults to the cache dir)"
    )
    quota: Optional[int] = Field(
        default=None, gt=0, description="Store capacity in UTF-16 code units"
    )


class RetryConfig(BaseModel):
    """Exponential backoff defaults used by :meth:`NetworkUtils.retry_with_backoff`."""

    max_retries: int = Field(default=3, ge=1, description="Total attempts")
    base_delay_ms: int = Field(default=1000, ge=0, description="First backoff delay")


class NetworkConfig(BaseModel):
    """Connectivity probe and wait settings."""

    probe_url: Optional[str] = Field(
        default=None, description="URL probed by `agricache net probe`"
    )
    probe_timeout: float = Field(default=5.0, gt=0, description="Probe timeout in seconds")
    wait_timeout_ms: int = Field(
        default=5000, ge=0, description="Default wait_for_connection() timeout"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/agricache/config.json``.

    Loaded and saved by :func:`~agricache.config.load_global_config` and
    :func:`~agricache.config.save_global_config`. Environment variables
    take precedence over the file, see :func:`~agricache.config.resolve_config`.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
