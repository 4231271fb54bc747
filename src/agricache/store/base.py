"""Abstract durable store contract.

The contract mirrors a browser-style storage area: ``length``,
``key(index)``, ``get_item``, ``set_item`` and ``remove_item``. Keys are
enumerated by index, so callers that delete while scanning must take a
snapshot first (:meth:`DurableStore.keys` does exactly that).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


def text_size(text: str) -> int:
    """Return the length of *text* in UTF-16 code units.

    This is the size metric used for quotas and for the cache capacity
    policy. It equals the character count for BMP text and counts astral
    characters (emoji, rare CJK) as two units.
    """
    return len(text.encode("utf-16-le")) // 2


class DurableStore(ABC):
    """Abstract base class for host-provided key-value text stores.

    Implementations must be synchronous and must tolerate
    :meth:`remove_item` on a missing key. :meth:`set_item` may raise
    :class:`~agricache.exceptions.QuotaExceededError` or
    :class:`~agricache.exceptions.StoreUnavailableError` at any time.
    """

    @property
    @abstractmethod
    def length(self) -> int:
        """Number of keys currently held by the store."""
        ...

    @abstractmethod
    def key(self, index: int) -> Optional[str]:
        """Return the key at position *index*, or ``None`` when out of range."""
        ...

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None`` when absent."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value.

        Raises:
            QuotaExceededError: If the write would exceed the store's quota.
            StoreUnavailableError: If the store cannot be written.
        """
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove *key* if present. Removing a missing key is a no-op."""
        ...

    def keys(self) -> list[str]:
        """Return a snapshot of all keys, safe to iterate while removing."""
        snapshot: list[str] = []
        for index in range(self.length):
            key = self.key(index)
            if key is not None:
                snapshot.append(key)
        return snapshot

    def used(self) -> int:
        """Total size of all keys and values in UTF-16 code units."""
        total = 0
        for key in self.keys():
            value = self.get_item(key)
            if value is not None:
                total += text_size(key) + text_size(value)
        return total

    def close(self) -> None:
        """Release any resources held by the store."""

    def __enter__(self) -> DurableStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
