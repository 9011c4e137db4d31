"""Cancellable deferred calls."""

from __future__ import annotations

import threading
from typing import Callable, Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Timers(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class ThreadTimers:
    """Runs each deferred call on its own daemon ``threading.Timer``."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer
