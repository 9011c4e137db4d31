"""Exponential-backoff retry scheduling for failed fetches."""

from __future__ import annotations

import logging
from typing import Callable

from usage_pulse import constants
from usage_pulse.daemon.timers import Timers
from usage_pulse.errors import UsageError
from usage_pulse.models import RetryState

logger = logging.getLogger("usage-pulse")


class RetryScheduler:
    """Owns the retry counter and the pending retry timer.

    Each scheduled retry is tagged with a generation number. Cancelling bumps
    the generation, so a timer that already fired (and whose message is still
    queued) is recognised as stale by :meth:`claim` and does nothing.
    """

    def __init__(
        self,
        timers: Timers,
        on_fire: Callable[[int], None],
        *,
        max_retry: int = constants.MAX_RETRY_COUNT,
        base_delay: float = constants.BACKOFF_BASE_SECONDS,
    ) -> None:
        self._timers = timers
        self._on_fire = on_fire
        self.max_retry = max_retry
        self.base_delay = base_delay
        self.state = RetryState()
        self._generation = 0

    @property
    def count(self) -> int:
        return self.state.count

    @property
    def pending(self) -> bool:
        return self.state.pending is not None

    def maybe_schedule(self, error: UsageError) -> float | None:
        """Schedule a retry for *error* if allowed. Returns the delay used."""
        if not error.retryable:
            return None

        if self.state.count >= self.max_retry:
            logger.warning(f"Giving up after {self.state.count} retries: {error}")
            self.reset()
            return None

        self.cancel()
        self.state.count += 1
        delay = self.base_delay ** self.state.count
        generation = self._generation
        self.state.pending = self._timers.call_later(delay, lambda: self._on_fire(generation))
        logger.info(f"Retry {self.state.count}/{self.max_retry} in {delay:.0f}s ({error})")
        return delay

    def cancel(self) -> None:
        """Cancel the pending retry, if any. The counter is left untouched."""
        self._generation += 1
        if self.state.pending is not None:
            self.state.pending.cancel()
            self.state.pending = None

    def reset(self) -> None:
        self.cancel()
        self.state.count = 0

    def claim(self, generation: int) -> bool:
        """Accept a fired retry. Returns False if it was cancelled meanwhile."""
        if generation != self._generation or self.state.pending is None:
            logger.debug(f"Ignoring stale retry (generation {generation})")
            return False
        self.state.pending = None
        self._generation += 1
        return True
