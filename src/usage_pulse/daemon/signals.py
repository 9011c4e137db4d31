"""Signal handling for the daemon.

SIGTERM/SIGINT request shutdown, SIGUSR1 a manual refresh, SIGUSR2 toggles
between paused and active, SIGHUP reloads the config file.
"""

from __future__ import annotations

import signal
import threading

from usage_pulse.daemon.lifecycle import EventSource


class SignalHandler:
    """Manages graceful shutdown and exposes the other signals as event sources."""

    def __init__(self) -> None:
        self._shutdown = threading.Event()
        self._active = True
        self.refresh_requested: EventSource[None] = EventSource("refresh")
        self.reload_requested: EventSource[None] = EventSource("reload")
        self.activation: EventSource[bool] = EventSource("activation")

    def install(self) -> None:
        """Install signal handlers."""
        signal.signal(signal.SIGTERM, self._handle)
        signal.signal(signal.SIGINT, self._handle)
        if hasattr(signal, "SIGUSR1"):
            signal.signal(signal.SIGUSR1, self._handle_refresh)
            signal.signal(signal.SIGUSR2, self._handle_toggle)
            signal.signal(signal.SIGHUP, self._handle_reload)

    def _handle(self, signum: int, frame: object) -> None:
        self._shutdown.set()

    def _handle_refresh(self, signum: int, frame: object) -> None:
        self.refresh_requested.emit(None)

    def _handle_reload(self, signum: int, frame: object) -> None:
        self.reload_requested.emit(None)

    def _handle_toggle(self, signum: int, frame: object) -> None:
        self._active = not self._active
        self.activation.emit(self._active)

    @property
    def active(self) -> bool:
        return self._active

    @property
    def should_stop(self) -> bool:
        return self._shutdown.is_set()

    def wait(self, timeout: float) -> bool:
        """Wait for shutdown signal. Returns True if signal received."""
        return self._shutdown.wait(timeout)
