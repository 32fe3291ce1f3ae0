"""Client-side authentication signal.

The status store stops polling as soon as this signal turns false, and
sets it false itself when a poll is rejected with 401.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from syncwatch.client.api import HTTPClient

logger = logging.getLogger(__name__)


class AuthSignal:
    """Observable "authenticated" flag."""

    def __init__(self, authenticated: bool = False) -> None:
        self._authenticated = authenticated
        self._listeners: list[Callable[[bool], None]] = []
        self._lock = threading.RLock()

    @property
    def authenticated(self) -> bool:
        """Check if the session is authenticated."""
        return self._authenticated

    def set(self, authenticated: bool) -> None:
        """Update the flag, notifying listeners if it changed."""
        with self._lock:
            if authenticated == self._authenticated:
                return
            self._authenticated = authenticated
            listeners = list(self._listeners)

        logger.info("Authentication %s", "restored" if authenticated else "lost")
        for listener in listeners:
            try:
                listener(authenticated)
            except Exception:
                logger.exception("Auth listener failed")

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Register a listener for changes.

        Returns:
            Function removing the listener.
        """
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def check(self, client: HTTPClient) -> bool:
        """Probe the server and update the flag accordingly."""
        authenticated = client.check_auth()
        self.set(authenticated)
        return authenticated
