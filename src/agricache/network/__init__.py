"""Network resilience helpers.

Provides the connectivity signal, the wait-for-connectivity and
exponential-backoff helpers, and an :mod:`httpx` based probe:

Classes:
    :class:`ConnectivitySignal` -- online flag plus "went online" listeners.
    :class:`NetworkUtils` -- ``is_online``, ``wait_for_connection``,
    ``retry_with_backoff``.
    :class:`ConnectivityProbe` -- HEAD request that updates a signal.

The module-level functions delegate to a shared :class:`NetworkUtils`
bound to :data:`default_signal`, for callers that do not need their own.

Example::

    from agricache.network import retry_with_backoff

    data = await retry_with_backoff(fetch_forecast, max_retries=3, base_delay_ms=1000)
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from agricache.network.probe import ConnectivityProbe
from agricache.network.signal import ConnectivitySignal
from agricache.network.utils import NetworkUtils

default_signal = ConnectivitySignal()
_default_utils = NetworkUtils(default_signal)


def is_online() -> bool:
    return _default_utils.is_online()


async def wait_for_connection(timeout_ms: Optional[int] = None) -> bool:
    return await _default_utils.wait_for_connection(timeout_ms)


async def retry_with_backoff(
    fn: Callable[[], Any],
    max_retries: Optional[int] = None,
    base_delay_ms: Optional[int] = None,
) -> Any:
    return await _default_utils.retry_with_backoff(fn, max_retries, base_delay_ms)


__all__ = [
    "ConnectivityProbe",
    "ConnectivitySignal",
    "NetworkUtils",
    "default_signal",
    "is_online",
    "retry_with_backoff",
    "wait_for_connection",
]
