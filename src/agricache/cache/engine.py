"""TTL cache engine on top of a durable key-value text store.

:class:`CacheEngine` owns every key under its namespace prefix in the
store it wraps and never touches keys outside it. Entries are stored as
JSON-serialised :class:`~agricache.models.CacheEntry` records carrying
their write time and lifetime.

Dead entries (expired or unparsable) are purged lazily on :meth:`~CacheEngine.get`
and :meth:`~CacheEngine.has`, in bulk by :meth:`~CacheEngine.cleanup_expired`,
and unparsable ones also during capacity enforcement.

After every successful write the capacity policy runs: when the namespace
exceeds ``max_size`` the oldest entries by write time are evicted until
the namespace is at or below ``max_size * eviction_ratio``. Sizes are
counted in UTF-16 code units of key + value text (see
:func:`~agricache.store.base.text_size`).

The engine is advisory. Store failures never propagate out of it: a
rejected write gets one expired-entry sweep and one retry, then is
dropped.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from agricache.exceptions import StoreError
from agricache.models import (
    DEFAULT_PREFIX,
    DEFAULT_TTL_MS,
    EVICTION_RATIO,
    MAX_CACHE_SIZE,
    CacheConfig,
    CacheEntry,
    CacheStats,
    EntryInfo,
)
from agricache.store.base import DurableStore, text_size

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class CacheEngine:
    """Namespaced, size-bounded TTL cache over a :class:`DurableStore`.

    Args:
        store: The durable store to write entries into. It may be shared
            with unrelated data; only keys starting with *prefix* are used.
        prefix: Namespace prefix prepended to every logical key.
        default_ttl: Lifetime in ms for entries written without a ``ttl``.
        max_size: Namespace capacity in UTF-16 code units.
        eviction_ratio: Fraction of *max_size* eviction frees down to.
        clock: Zero-argument callable returning the current time in ms.

    Example::

        engine = CacheEngine(MemoryStore())
        engine.set("weather_pune", {"temp": 31}, ttl=30 * 60 * 1000)
        engine.get("weather_pune")  # {"temp": 31}
    """

    def __init__(
        self,
        store: DurableStore,
        *,
        prefix: str = DEFAULT_PREFIX,
        default_ttl: int = DEFAULT_TTL_MS,
        max_size: int = MAX_CACHE_SIZE,
        eviction_ratio: float = EVICTION_RATIO,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if not prefix:
            raise ValueError("Cache prefix must not be empty")
        self._store = store
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._max_size = max_size
        self._eviction_ratio = eviction_ratio
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        store: DurableStore,
        config: CacheConfig,
        clock: Callable[[], int] = now_ms,
    ) -> CacheEngine:
        """Build an engine from a :class:`~agricache.models.CacheConfig`."""
        return cls(
            store,
            prefix=config.prefix,
            default_ttl=config.default_ttl_ms,
            max_size=config.max_size,
            eviction_ratio=config.eviction_ratio,
            clock=clock,
        )

    @property
    def store(self) -> DurableStore:
        return self._store

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @property
    def max_size(self) -> int:
        return self._max_size

    # ------------------------------------------------------------------ #
    # Public contract
    # ------------------------------------------------------------------ #

    def set(self, key: str, data: Any, ttl: Optional[int] = None) -> None:
        """Store *data* under *key* for *ttl* ms (default: ``default_ttl``).

        Never raises. If the store rejects the write, expired entries are
        swept and the write is retried once; a second rejection drops it.
        """
        entry = CacheEntry(
            data=data,
            timestamp=int(self._clock()),
            ttl=int(self._default_ttl if ttl is None else ttl),
        )
        try:
            text = entry.model_dump_json()
        except PydanticSerializationError as exc:
            logger.warning("Cache value for '%s' is not serialisable: %s", key, exc)
            return

        namespaced = self._namespaced(key)
        try:
            self._store.set_item(namespaced, text)
            self.enforce_size_limit(protect=namespaced)
        except StoreError as exc:
            logger.warning("Cache storage failed for '%s': %s", key, exc)
            self.cleanup_expired()
            try:
                self._store.set_item(namespaced, text)
            except StoreError as retry_exc:
                logger.debug("Dropping cache write for '%s': %s", key, retry_exc)

    def get(self, key: str) -> Any:
        """Return the live value for *key*, or ``None``.

        Expired and unparsable entries are removed from the store.
        """
        entry = self._read_live(key)
        return entry.data if entry is not None else None

    def has(self, key: str) -> bool:
        """Return whether a live entry exists for *key*, purging dead ones."""
        return self._read_live(key) is not None

    def delete(self, key: str) -> None:
        """Remove *key*. Deleting a missing key is a no-op."""
        self._remove(self._namespaced(key))

    def clear(self) -> int:
        """Remove every entry in the namespace and return how many were removed.

        Keys outside the prefix are left untouched.
        """
        keys = self._namespace_keys()
        for namespaced in keys:
            self._remove(namespaced)
        logger.debug("Cleared %d cache entries", len(keys))
        return len(keys)

    def cleanup_expired(self) -> int:
        """Remove every expired or unparsable entry and return the count."""
        now = self._clock()
        removed = 0
        for namespaced in self._namespace_keys():
            entry = self._load(namespaced)
            if entry is None or entry.is_expired(now):
                self._remove(namespaced)
                removed += 1
        if removed:
            logger.debug("Swept %d dead cache entries", removed)
        return removed

    def enforce_size_limit(self, protect: Optional[str] = None) -> list[str]:
        """Evict oldest entries once the namespace exceeds ``max_size``.

        Frees down to ``max_size * eviction_ratio``. The namespaced key
        *protect* (normally the entry just written) is considered last.

        Returns:
            The logical keys of evicted entries, oldest first.
        """
        current = self.size()
        if current <= self._max_size:
            return []

        candidates: list[tuple[bool, int, str]] = []
        for namespaced in self._namespace_keys():
            entry = self._load(namespaced)
            if entry is None:
                self._remove(namespaced)
                continue
            candidates.append((namespaced == protect, entry.timestamp, namespaced))
        candidates.sort(key=lambda c: (c[0], c[1]))

        size_to_free = current - self._max_size * self._eviction_ratio
        evicted: list[str] = []
        for _, _, namespaced in candidates:
            if size_to_free <= 0:
                break
            value = self._safe_get(namespaced)
            if value is None:
                continue
            size_to_free -= text_size(namespaced) + text_size(value)
            self._remove(namespaced)
            evicted.append(namespaced[len(self._prefix):])

        logger.debug(
            "Cache over capacity (%d > %d), evicted %d entries",
            current,
            self._max_size,
            len(evicted),
        )
        return evicted

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def size(self) -> int:
        """Total key + value size of the namespace in UTF-16 code units."""
        total = 0
        for namespaced in self._namespace_keys():
            value = self._safe_get(namespaced)
            if value is not None:
                total += text_size(namespaced) + text_size(value)
        return total

    def keys(self) -> list[str]:
        """Logical keys currently in the namespace, without liveness checks."""
        return [k[len(self._prefix):] for k in self._namespace_keys()]

    def entries(self) -> list[EntryInfo]:
        """Describe every namespace entry without purging dead ones."""
        now = self._clock()
        infos: list[EntryInfo] = []
        for namespaced in self._namespace_keys():
            raw = self._safe_get(namespaced)
            if raw is None:
                continue
            entry = _parse(raw)
            infos.append(
                EntryInfo(
                    key=namespaced[len(self._prefix):],
                    size=text_size(namespaced) + text_size(raw),
                    expires_in_ms=entry.expires_in(now) if entry is not None else None,
                )
            )
        return infos

    def expires_in(self, key: str) -> Optional[int]:
        """Milliseconds until the live entry for *key* expires, or ``None``.

        Dead entries are purged as in :meth:`get`.
        """
        entry = self._read_live(key)
        return entry.expires_in(self._clock()) if entry is not None else None

    def stats(self) -> CacheStats:
        """Return a :class:`~agricache.models.CacheStats` snapshot."""
        return CacheStats(
            prefix=self._prefix,
            entries=len(self._namespace_keys()),
            size=self.size(),
            max_size=self._max_size,
            default_ttl_ms=self._default_ttl,
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _namespaced(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _namespace_keys(self) -> list[str]:
        try:
            return [k for k in self._store.keys() if k.startswith(self._prefix)]
        except StoreError as exc:
            logger.warning("Cannot enumerate cache store: %s", exc)
            return []

    def _safe_get(self, namespaced: str) -> Optional[str]:
        try:
            return self._store.get_item(namespaced)
        except StoreError as exc:
            logger.debug("Cache read failed for '%s': %s", namespaced, exc)
            return None

    def _remove(self, namespaced: str) -> None:
        try:
            self._store.remove_item(namespaced)
        except StoreError as exc:
            logger.debug("Cache removal failed for '%s': %s", namespaced, exc)

    def _load(self, namespaced: str) -> Optional[CacheEntry]:
        """Parse the stored entry, returning ``None`` when absent or corrupt."""
        raw = self._safe_get(namespaced)
        return _parse(raw) if raw is not None else None

    def _read_live(self, key: str) -> Optional[CacheEntry]:
        namespaced = self._namespaced(key)
        raw = self._safe_get(namespaced)
        if raw is None:
            return None
        entry = _parse(raw)
        if entry is None:
            logger.debug("Removing corrupt cache entry '%s'", key)
            self._remove(namespaced)
            return None
        if entry.is_expired(self._clock()):
            logger.debug("Removing expired cache entry '%s'", key)
            self._remove(namespaced)
            return None
        return entry


def _parse(raw: str) -> Optional[CacheEntry]:
    try:
        return CacheEntry.model_validate_json(raw)
    except ValidationError:
        return None
