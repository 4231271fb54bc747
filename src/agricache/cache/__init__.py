"""TTL caching for agricache.

This package provides :class:`CacheEngine`, a namespaced, size-bounded
TTL cache over a :class:`~agricache.store.base.DurableStore`, plus:

* :func:`use_cache` / :func:`fetch_with_cache` -- read-through caching
  around an async producer (:mod:`agricache.cache.fetch`).
* :class:`WeatherCache` and :class:`FeedCache` -- fixed-TTL domain
  wrappers (:mod:`agricache.cache.domains`).

The engine is configured by the ``cache`` section of the global
configuration (:class:`~agricache.models.CacheConfig`).
"""

from agricache.cache.domains import FeedCache, WeatherCache, feed_key, stable_serialize
from agricache.cache.engine import CacheEngine, now_ms
from agricache.cache.fetch import CacheHandle, SingleFlight, fetch_with_cache, use_cache

__all__ = [
    "CacheEngine",
    "CacheHandle",
    "FeedCache",
    "SingleFlight",
    "WeatherCache",
    "feed_key",
    "fetch_with_cache",
    "now_ms",
    "stable_serialize",
    "use_cache",
]
