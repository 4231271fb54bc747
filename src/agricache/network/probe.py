"""HTTP connectivity probe that keeps a :class:`ConnectivitySignal` current.

:class:`ConnectivityProbe` sends a ``HEAD`` request with :mod:`httpx`. Any
HTTP response, whatever its status, proves the network path works and
marks the signal online; transport errors (DNS failure, refused
connection, timeout) mark it offline. The transition to online fires the
signal's listeners, which is what wakes up
:meth:`~agricache.network.utils.NetworkUtils.wait_for_connection`.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from agricache.network.signal import ConnectivitySignal

logger = logging.getLogger(__name__)


class ConnectivityProbe:
    """Probe *url* and feed the result into *signal*.

    Args:
        signal: The connectivity signal to update.
        url: Absolute URL to probe.
        timeout: Request timeout in seconds.
        client: Optional pre-built :class:`httpx.AsyncClient` (e.g. with a
            mock transport). Probes create and close their own otherwise.
    """

    def __init__(
        self,
        signal: ConnectivitySignal,
        url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._signal = signal
        self._url = url
        self._timeout = timeout
        self._client = client

    @property
    def url(self) -> str:
        return self._url

    async def check(self) -> bool:
        """Probe once, update the signal and return the new online flag."""
        online = await self._reachable()
        self._signal.set_online(online)
        return online

    async def _reachable(self) -> bool:
        try:
            if self._client is not None:
                response = await self._client.head(self._url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(
                    timeout=self._timeout, follow_redirects=True
                ) as client:
                    response = await client.head(self._url)
        except httpx.TransportError as exc:
            logger.debug("Probe of %s failed: %s", self._url, exc)
            return False
        logger.debug("Probe of %s returned HTTP %d", self._url, response.status_code)
        return True
