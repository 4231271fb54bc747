"""agricache -- durable TTL cache and network resilience helpers.

This package is the client-side resilience layer used by data-access code
to avoid redundant network calls and to ride out transient failures. It
is made of two independent halves that callers usually compose:

* A size-bounded, time-to-live key-value cache on top of a host-provided
  durable text store, with a read-through helper and a few fixed-TTL
  domain wrappers (weather, forecast, feed listings).
* Connectivity helpers: an online/offline signal, a bounded wait for
  connectivity and an exponential-backoff retry wrapper.

Typical usage::

    from agricache import CacheEngine, MemoryStore, use_cache

    engine = CacheEngine(MemoryStore())
    handle = use_cache(engine, "weather_pune", fetch_weather, ttl=30 * 60 * 1000)
    data = await handle.fetch_with_cache()

Modules:
    app: Typer application and ``agricache`` console-script entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration loading and store construction.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: Rendering of command results and status lines with Rich.
"""

from agricache.cache import (
    CacheEngine,
    CacheHandle,
    FeedCache,
    SingleFlight,
    WeatherCache,
    fetch_with_cache,
    stable_serialize,
    use_cache,
)
from agricache.network import ConnectivityProbe, ConnectivitySignal, NetworkUtils
from agricache.store import DiskStore, DurableStore, MemoryStore

__version__ = "0.3.0"

__all__ = [
    "CacheEngine",
    "CacheHandle",
    "ConnectivityProbe",
    "ConnectivitySignal",
    "DiskStore",
    "DurableStore",
    "FeedCache",
    "MemoryStore",
    "NetworkUtils",
    "SingleFlight",
    "WeatherCache",
    "fetch_with_cache",
    "stable_serialize",
    "use_cache",
]
