from __future__ import annotations

import logging
import threading
import time
from typing import Any

from .cdp import network
from .connection import CdpConnection

logger = logging.getLogger("chromewire.network_monitor")


class NetworkMonitor:
    """Tracks in-flight requests from Network.* events to answer "is the page idle?".

    State is mutated only by event handlers (running on the connection's event
    dispatcher) and read from any thread by ``is_network_idle``.
    """

    def __init__(self, conn: CdpConnection, *, clock=time.monotonic) -> None:  # noqa: ANN001
        self.conn = conn
        self._clock = clock
        self._lock = threading.Lock()
        self._active: dict[str, float] = {}
        self._last_activity = clock()
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        if self._enabled:
            return
        network.enable(self.conn)
        self.conn.subscribe(network.REQUEST_WILL_BE_SENT, self._on_request_started)
        self.conn.subscribe(network.LOADING_FINISHED, self._on_request_done)
        self.conn.subscribe(network.LOADING_FAILED, self._on_request_done)
        with self._lock:
            self._last_activity = self._clock()
        self._enabled = True

    def disable(self) -> None:
        if not self._enabled:
            return
        self.conn.unsubscribe(network.REQUEST_WILL_BE_SENT, self._on_request_started)
        self.conn.unsubscribe(network.LOADING_FINISHED, self._on_request_done)
        self.conn.unsubscribe(network.LOADING_FAILED, self._on_request_done)
        self._enabled = False
        with self._lock:
            self._active.clear()
        if self.conn.is_connected:
            network.disable(self.conn)

    def _on_request_started(self, params: dict[str, Any]) -> None:
        request_id = params.get("requestId")
        if not isinstance(request_id, str):
            return
        now = self._clock()
        with self._lock:
            # Redirects reuse the requestId; the entry is simply refreshed.
            self._active[request_id] = now
            self._last_activity = now

    def _on_request_done(self, params: dict[str, Any]) -> None:
        request_id = params.get("requestId")
        if not isinstance(request_id, str):
            return
        with self._lock:
            if self._active.pop(request_id, None) is None:
                logger.debug("Finish/fail for untracked request %s", request_id)
            self._last_activity = self._clock()

    @property
    def active_request_count(self) -> int:
        with self._lock:
            return len(self._active)

    def is_network_idle(self, max_connections: int = 0, idle_duration: float = 0.5) -> bool:
        """True when at most ``max_connections`` requests are in flight and
        nothing started or finished during the last ``idle_duration`` seconds.

        Always True while monitoring is disabled.
        """
        if not self._enabled:
            return True
        with self._lock:
            if len(self._active) > max_connections:
                return False
            return self._clock() - self._last_activity >= idle_duration
