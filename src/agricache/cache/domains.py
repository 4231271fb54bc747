"""Fixed-TTL, namespaced wrappers over the shared cache engine.

Each wrapper only builds keys and picks a TTL; every operation goes
through the same :class:`~agricache.cache.engine.CacheEngine` so capacity
accounting stays global.

Feed listings are keyed by their filter object. :func:`stable_serialize`
sorts mapping keys at every level so that logically equal filters map to
the same cache key whatever their field order.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from agricache.cache.engine import CacheEngine
from agricache.models import FEED_TTL_MS, FORECAST_TTL_MS, WEATHER_TTL_MS


def stable_serialize(value: Any) -> str:
    """Serialise *value* to compact JSON with sorted keys at every level.

    Mapping keys are converted with ``str()`` first, so filters mixing key
    types (``{1: "a", "b": 2}``) still sort. Sets are sorted by their own
    serialisation so their iteration order does not leak into the key.
    Values JSON cannot represent natively (dates, UUIDs) fall back to
    ``str()``.
    """
    return json.dumps(
        _canonical(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def _canonical(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_canonical(v) for v in value), key=stable_serialize)
    return value


def feed_key(filters: Optional[Mapping[Any, Any]]) -> str:
    """Cache key for a feed listing requested with *filters*."""
    return f"posts_{stable_serialize(filters)}"


class WeatherCache:
    """Current-weather and forecast snapshots keyed by district."""

    def __init__(self, engine: CacheEngine) -> None:
        self._engine = engine

    def set_weather(self, district: str, data: Any) -> None:
        self._engine.set(f"weather_{district}", data, ttl=WEATHER_TTL_MS)

    def get_weather(self, district: str) -> Any:
        return self._engine.get(f"weather_{district}")

    def set_forecast(self, district: str, data: Any) -> None:
        self._engine.set(f"forecast_{district}", data, ttl=FORECAST_TTL_MS)

    def get_forecast(self, district: str) -> Any:
        return self._engine.get(f"forecast_{district}")


class FeedCache:
    """Paginated community feed listings keyed by their filter set."""

    def __init__(self, engine: CacheEngine) -> None:
        self._engine = engine

    def set_feed(self, filters: Optional[Mapping[Any, Any]], data: Any) -> None:
        self._engine.set(feed_key(filters), data, ttl=FEED_TTL_MS)

    def get_feed(self, filters: Optional[Mapping[Any, Any]]) -> Any:
        return self._engine.get(feed_key(filters))

    def invalidate_feed(self) -> int:
        """Drop every cached entry in the namespace, not only feed listings.

        Returns:
            Number of entries removed.
        """
        return self._engine.clear()
