"""Messages posted to the monitor thread."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RefreshRequested:
    manual: bool = False
    source: str = "timer"


@dataclass(frozen=True)
class TimerTick:
    generation: int


@dataclass(frozen=True)
class RetryFired:
    generation: int


@dataclass(frozen=True)
class NetworkChanged:
    available: bool


@dataclass(frozen=True)
class ActivationChanged:
    active: bool


@dataclass(frozen=True)
class IntervalChanged:
    seconds: int


@dataclass(frozen=True)
class SettingsChanged:
    notifications_enabled: bool
    critical_threshold: int
    warning_threshold: int


@dataclass(frozen=True)
class StatusQuery:
    future: Future = field(default_factory=Future)
