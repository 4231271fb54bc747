"""Connectivity wait and exponential-backoff retry.

:class:`NetworkUtils` wraps a :class:`~agricache.network.signal.ConnectivitySignal`
and offers:

- :meth:`~NetworkUtils.is_online` -- the current connectivity flag.
- :meth:`~NetworkUtils.wait_for_connection` -- wait until the host comes
  back online or a timeout elapses, whichever happens first.
- :meth:`~NetworkUtils.retry_with_backoff` -- retry a failing call with
  exponential delay (1 s, 2 s, 4 s, ... for the default base delay).

None of these raise on their own account: a connectivity timeout is a
``False`` result, and an exhausted retry re-raises the last error from the
wrapped call exactly as it was raised.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from agricache.models import NetworkConfig, RetryConfig
from agricache.network.signal import ConnectivitySignal

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


class NetworkUtils:
    """Connectivity and retry helpers bound to one connectivity signal.

    Args:
        signal: Connectivity source. A fresh online signal is used when
            ``None``.
        retry: Backoff defaults for :meth:`retry_with_backoff`.
        network: Supplies the default :meth:`wait_for_connection` timeout.
        sleep: Coroutine function used for backoff delays, in seconds.

    Example::

        utils = NetworkUtils(signal)
        if await utils.wait_for_connection(5000):
            data = await utils.retry_with_backoff(fetch_weather)
    """

    def __init__(
        self,
        signal: Optional[ConnectivitySignal] = None,
        retry: Optional[RetryConfig] = None,
        network: Optional[NetworkConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._signal = signal if signal is not None else ConnectivitySignal()
        self._retry = retry or RetryConfig()
        self._network = network or NetworkConfig()
        self._sleep = sleep

    @property
    def signal(self) -> ConnectivitySignal:
        return self._signal

    def is_online(self) -> bool:
        return self._signal.is_online

    async def wait_for_connection(self, timeout_ms: Optional[int] = None) -> bool:
        """Wait until the signal reports online or *timeout_ms* elapses.

        Returns ``True`` immediately when already online, ``True`` when the
        "went online" event fires first and ``False`` when the timer does.
        """
        if self.is_online():
            return True
        if timeout_ms is None:
            timeout_ms = self._network.wait_timeout_ms

        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[bool] = loop.create_future()

        def _settle(value: bool) -> None:
            if not outcome.done():
                outcome.set_result(value)

        unsubscribe = self._signal.add_listener(lambda: _settle(True), once=True)
        timer = loop.call_later(timeout_ms / 1000, _settle, False)
        try:
            online = await outcome
        finally:
            timer.cancel()
            unsubscribe()
        if not online:
            logger.debug("Still offline after %d ms", timeout_ms)
        return online

    async def retry_with_backoff(
        self,
        fn: Callable[[], Union[T, Awaitable[T]]],
        max_retries: Optional[int] = None,
        base_delay_ms: Optional[int] = None,
    ) -> T:
        """Call *fn* up to *max_retries* times with exponential backoff.

        The delay before retry ``n`` (0-based) is ``base_delay_ms * 2**n``
        with no jitter. *fn* may be a plain callable or return an
        awaitable.

        Raises:
            ValueError: If *max_retries* is less than 1.
            Exception: The last error raised by *fn*, unchanged.
        """
        if max_retries is None:
            max_retries = self._retry.max_retries
        if base_delay_ms is None:
            base_delay_ms = self._retry.base_delay_ms
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")

        for attempt in range(max_retries):
            try:
                result = fn()
                if inspect.isawaitable(result):
                    result = await result
                return result
            except Exception as exc:
                if attempt == max_retries - 1:
                    raise
                delay = base_delay_ms * 2 ** attempt
                logger.debug(
                    "Attempt %d/%d failed: %s, retrying in %d ms",
                    attempt + 1,
                    max_retries,
                    exc,
                    delay,
                )
                await self._sleep(delay / 1000)

        raise AssertionError("unreachable")  # pragma: no cover
