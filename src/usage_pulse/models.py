"""Data models for usage-pulse."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from usage_pulse.errors import UsageError


class UsageStatus(enum.Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class UsageLimit:
    utilization: float = 0.0
    resets_at: datetime | None = None


@dataclass(frozen=True)
class UsageSnapshot:
    """One complete usage payload from a single successful fetch."""
    five_hour: UsageLimit | None = None
    seven_day: UsageLimit | None = None
    seven_day_opus: UsageLimit | None = None
    seven_day_sonnet: UsageLimit | None = None


@dataclass(frozen=True)
class DisplayMetric:
    name: str
    icon: str
    limit: UsageLimit
    percentage: int = 0
    status: UsageStatus = UsageStatus.NORMAL
    remaining_time: str = ""
    time_progress: float = 0.0


@dataclass
class FetchState:
    snapshot: UsageSnapshot | None = None
    last_updated: datetime | None = None
    last_error: UsageError | None = None
    is_loading: bool = False


@dataclass
class RetryState:
    count: int = 0
    pending: Any = None  # cancellable timer handle


@dataclass
class NotificationState:
    has_notified_critical: bool = False
    last_notified_percentage: int = 0


@dataclass(frozen=True)
class AlertEvent:
    metric_name: str
    percentage: int
    remaining_time: str
