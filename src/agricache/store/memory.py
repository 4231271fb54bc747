"""In-memory durable store."""

from __future__ import annotations

from typing import Optional

from agricache.exceptions import QuotaExceededError
from agricache.store.base import DurableStore, text_size


class MemoryStore(DurableStore):
    """Dict-backed :class:`~agricache.store.base.DurableStore`.

    Keys are enumerated in insertion order. When *quota* is set, a write
    that would push the total key + value size past it raises
    :class:`~agricache.exceptions.QuotaExceededError` and leaves the store
    unchanged.

    Args:
        quota: Optional capacity in UTF-16 code units.
        initial: Optional mapping to pre-populate the store with.

    Example::

        store = MemoryStore(quota=1024)
        store.set_item("greeting", "hello")
        assert store.get_item("greeting") == "hello"
    """

    def __init__(
        self,
        quota: Optional[int] = None,
        initial: Optional[dict[str, str]] = None,
    ) -> None:
        self._quota = quota
        self._data: dict[str, str] = dict(initial or {})

    @property
    def quota(self) -> Optional[int]:
        """Configured capacity, or ``None`` for unbounded."""
        return self._quota

    @property
    def length(self) -> int:
        return len(self._data)

    def key(self, index: int) -> Optional[str]:
        if index < 0 or index >= len(self._data):
            return None
        return list(self._data)[index]

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota is not None:
            previous = self._data.get(key)
            freed = text_size(key) + text_size(previous) if previous is not None else 0
            needed = self.used() - freed + text_size(key) + text_size(value)
            if needed > self._quota:
                raise QuotaExceededError(
                    f"Writing '{key}' needs {needed} units, quota is {self._quota}"
                )
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        """Remove every key, including keys outside any cache namespace."""
        self._data.clear()
