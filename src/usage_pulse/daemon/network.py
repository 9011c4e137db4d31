"""Network reachability tracking."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable

from usage_pulse import constants

logger = logging.getLogger("usage-pulse")


class NetworkWatcher:
    """Tracks reachability and reports unavailable -> available transitions."""

    def __init__(self) -> None:
        self.available = True
        self._was_unavailable = False

    def observe(self, available: bool) -> bool:
        """Record a reachability signal. Returns True when the network recovered."""
        recovered = available and self._was_unavailable
        if available != self.available:
            logger.info(f"Network {'available' if available else 'unavailable'}")
        self.available = available
        self._was_unavailable = not available
        return recovered


class ReachabilityProbe:
    """Background thread that probes a TCP endpoint and reports changes.

    *callback* runs on the probe thread with the new reachability value; it
    is called for the first result and then only when the value changes.
    """

    def __init__(
        self,
        callback: Callable[[bool], None],
        *,
        host: str = constants.NETWORK_PROBE_HOST,
        port: int = constants.NETWORK_PROBE_PORT,
        interval: float = constants.NETWORK_PROBE_INTERVAL_SECONDS,
        timeout: float = constants.NETWORK_PROBE_TIMEOUT_SECONDS,
        connect: Callable[..., socket.socket] = socket.create_connection,
    ) -> None:
        self._callback = callback
        self.host = host
        self.port = port
        self.interval = interval
        self.timeout = timeout
        self._connect = connect
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._last: bool | None = None

    def check(self) -> bool:
        try:
            with self._connect((self.host, self.port), timeout=self.timeout):
                return True
        except OSError:
            return False

    def poll_once(self) -> None:
        available = self.check()
        if available != self._last:
            self._last = available
            self._callback(available)

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, daemon=True, name="ReachabilityProbe")
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.interval)
