"""Explicit event sources for lifecycle and trigger signals."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger("usage-pulse")

T = TypeVar("T")


class EventSource(Generic[T]):
    """A minimal publish/subscribe channel.

    Handlers run synchronously on the emitting thread; they are expected to
    do nothing more than post a message to the owning monitor.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._handlers: list[Callable[[T], None]] = []

    def subscribe(self, handler: Callable[[T], None]) -> None:
        with self._lock:
            self._handlers.append(handler)

    def unsubscribe(self, handler: Callable[[T], None]) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def emit(self, value: T) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(value)
            except Exception:
                logger.exception(f"Handler error on event source {self.name or '?'}")
