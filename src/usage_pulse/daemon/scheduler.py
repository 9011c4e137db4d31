"""Periodic refresh trigger."""

from __future__ import annotations

import logging
from typing import Callable

from usage_pulse.daemon.timers import Cancellable, Timers

logger = logging.getLogger("usage-pulse")


class PeriodicTrigger:
    """Re-arming interval timer owned by the monitor thread.

    A fired timer only reports its generation through *on_tick*; the owner
    calls :meth:`claim` to accept the tick, which re-arms the next one. Ticks
    from a stopped or replaced timer are rejected.
    """

    def __init__(self, timers: Timers, on_tick: Callable[[int], None], interval: float) -> None:
        self._timers = timers
        self._on_tick = on_tick
        self.interval = interval
        self._handle: Cancellable | None = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self, interval: float | None = None) -> None:
        self.stop()
        if interval is not None:
            self.interval = interval
        self._arm()
        logger.debug(f"Refresh timer started (every {self.interval}s)")

    def stop(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def reschedule(self, interval: float) -> None:
        """Replace the running timer with one at *interval*."""
        if self.running:
            self.start(interval)
        else:
            self.interval = interval

    def claim(self, generation: int) -> bool:
        if generation != self._generation or self._handle is None:
            return False
        self._generation += 1
        self._arm()
        return True

    def _arm(self) -> None:
        generation = self._generation
        self._handle = self._timers.call_later(self.interval, lambda: self._on_tick(generation))
