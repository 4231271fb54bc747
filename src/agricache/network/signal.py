"""Host connectivity flag with a subscribable "went online" event."""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ConnectivitySignal:
    """Boolean online flag plus listeners fired on the offline -> online edge.

    Listeners registered with ``once=True`` are unsubscribed before they
    are invoked, so they fire at most one time. A listener that raises is
    logged and does not stop the others.

    Args:
        online: Initial connectivity state.
    """

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._listeners: list[tuple[Listener, bool]] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        """Update the flag, notifying listeners when it turns ``True``."""
        was_online = self._online
        self._online = online
        if online and not was_online:
            logger.debug("Connectivity restored")
            self._fire()
        elif not online and was_online:
            logger.debug("Connectivity lost")

    def add_listener(self, listener: Listener, once: bool = True) -> Callable[[], None]:
        """Subscribe *listener* to the "went online" event.

        Returns:
            A callable that removes the listener; safe to call repeatedly.
        """
        record = (listener, once)
        self._listeners.append(record)

        def _unsubscribe() -> None:
            if record in self._listeners:
                self._listeners.remove(record)

        return _unsubscribe

    def remove_listener(self, listener: Listener) -> None:
        self._listeners = [r for r in self._listeners if r[0] is not listener]

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _fire(self) -> None:
        current = list(self._listeners)
        self._listeners = [r for r in current if not r[1]]
        for listener, _ in current:
            try:
                listener()
            except Exception:
                logger.exception("Connectivity listener failed")
