"""Persistent durable store backed by :mod:`diskcache`.

Values live in a :class:`diskcache.Cache` directory so that cached entries
survive process restarts. diskcache's own expiry and eviction are not
used: the store keeps every item until it is removed, and TTL and
capacity are the cache engine's concern. Only the optional quota is
enforced here, mirroring the "storage full" failure of a host store.

Every diskcache failure (I/O errors, SQLite errors and lock timeouts
under contention from another process) surfaces as
:class:`~agricache.exceptions.StoreUnavailableError`.

See Also:
    :class:`~agricache.models.StoreConfig` -- the Pydantic model that
    selects this backend and its directory and quota.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import diskcache

from agricache.exceptions import QuotaExceededError, StoreUnavailableError
from agricache.store.base import DurableStore, text_size

logger = logging.getLogger(__name__)

_DISK_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except _DISK_ERRORS as exc:
        raise StoreUnavailableError(f"Disk store {action} failed: {exc!r}") from exc


class DiskStore(DurableStore):
    """Disk-backed :class:`~agricache.store.base.DurableStore`.

    Keys are enumerated in sorted order so that ``key(i)`` is stable
    between calls. A running size total is kept in memory so quota checks
    do not rescan the directory on every write.

    Args:
        directory: Root directory for the store. A ``store/`` subdirectory
            is created inside it.
        quota: Optional capacity in UTF-16 code units.
        timeout: Seconds to wait for the SQLite lock before giving up.

    Example::

        with DiskStore("/tmp/agricache") as store:
            store.set_item("k", "v")
    """

    def __init__(
        self,
        directory: str | Path,
        quota: Optional[int] = None,
        timeout: float = 60.0,
    ) -> None:
        self._directory = Path(directory) / "store"
        self._quota = quota
        self._cache: Optional[diskcache.Cache] = None
        with _translate_errors("open"):
            # eviction_policy="none" keeps diskcache from dropping items on its own.
            self._cache = diskcache.Cache(
                str(self._directory), eviction_policy="none", timeout=timeout
            )
            self._used = self._scan_used()

    @property
    def directory(self) -> Path:
        """Filesystem location of the underlying diskcache directory."""
        return self._directory

    @property
    def quota(self) -> Optional[int]:
        """Configured capacity, or ``None`` for unbounded."""
        return self._quota

    @property
    def length(self) -> int:
        cache = self._require()
        with _translate_errors("count"):
            return len(cache)

    def key(self, index: int) -> Optional[str]:
        keys = self.keys()
        if index < 0 or index >= len(keys):
            return None
        return keys[index]

    def keys(self) -> list[str]:
        cache = self._require()
        with _translate_errors("listing"):
            return sorted(k for k in cache.iterkeys() if isinstance(k, str))

    def get_item(self, key: str) -> Optional[str]:
        cache = self._require()
        with _translate_errors("read"):
            value = cache.get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    def set_item(self, key: str, value: str) -> None:
        cache = self._require()
        with _translate_errors("write"):
            previous = cache.get(key)
            freed = text_size(key) + text_size(previous) if isinstance(previous, str) else 0
            added = text_size(key) + text_size(value)
            if self._quota is not None and self._used - freed + added > self._quota:
                raise QuotaExceededError(
                    f"Writing '{key}' would exceed the store quota of {self._quota}"
                )
            cache.set(key, value)
        self._used += added - freed

    def remove_item(self, key: str) -> None:
        cache = self._require()
        with _translate_errors("delete"):
            previous = cache.get(key)
            deleted = cache.delete(key)
        if deleted and isinstance(previous, str):
            self._used -= text_size(key) + text_size(previous)

    def used(self) -> int:
        return self._used

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None

    def _require(self) -> diskcache.Cache:
        if self._cache is None:
            raise StoreUnavailableError("Disk store is closed")
        return self._cache

    def _scan_used(self) -> int:
        total = 0
        cache = self._require()
        for key in cache.iterkeys():
            value = cache.get(key)
            if isinstance(key, str) and isinstance(value, str):
                total += text_size(key) + text_size(value)
        logger.debug("Disk store at %s holds %d units", self._directory, total)
        return total
