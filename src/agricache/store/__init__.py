"""Durable key-value text stores consumed by the cache engine.

A :class:`DurableStore` models the host's persistent key-value store: a
finite-capacity, synchronous, string-to-string mapping with no expiry of
its own. Two implementations ship with the package:

* :class:`MemoryStore` -- dict-backed, used in tests and as a fallback.
* :class:`DiskStore` -- persistent, backed by :mod:`diskcache`.

Both enforce an optional quota and raise
:class:`~agricache.exceptions.QuotaExceededError` from ``set_item`` when a
write would exceed it.
"""

from agricache.store.base import DurableStore, text_size
from agricache.store.disk import DiskStore
from agricache.store.memory import MemoryStore

__all__ = ["DiskStore", "DurableStore", "MemoryStore", "text_size"]
