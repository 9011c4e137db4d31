"""Display-ready metrics derived from a usage snapshot."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Callable

from usage_pulse import constants
from usage_pulse.models import DisplayMetric, UsageLimit, UsageSnapshot, UsageStatus

UNKNOWN_METRIC = DisplayMetric(
    name="Unknown",
    icon="?",
    limit=UsageLimit(utilization=0.0, resets_at=None),
    percentage=0,
    status=UsageStatus.NORMAL,
    remaining_time="unknown",
    time_progress=0.0,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def percentage_for(utilization: float) -> int:
    """Round half up and clamp to 0-100."""
    return min(max(int(math.floor(utilization + 0.5)), 0), 100)


def status_for(
    percentage: int,
    *,
    critical_threshold: int = constants.CRITICAL_THRESHOLD,
    warning_threshold: int = constants.WARNING_THRESHOLD,
) -> UsageStatus:
    if percentage >= constants.EXHAUSTED_PERCENTAGE:
        return UsageStatus.EXHAUSTED
    if percentage >= critical_threshold:
        return UsageStatus.CRITICAL
    if percentage >= warning_threshold:
        return UsageStatus.WARNING
    return UsageStatus.NORMAL


def format_remaining(resets_at: datetime | None, now: datetime) -> str:
    """Humanized countdown until *resets_at*.

    Examples: "2h 15m", "45m", "3d 5h", "now"
    """
    if resets_at is None:
        return "unknown"

    total_seconds = int((_aware(resets_at) - _aware(now)).total_seconds())
    if total_seconds <= 0:
        return "now"

    days = total_seconds // 86400
    hours = (total_seconds % 86400) // 3600
    minutes = (total_seconds % 3600) // 60

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 and days == 0:
        parts.append(f"{minutes}m")
    return " ".join(parts) if parts else "<1m"


def time_progress(resets_at: datetime | None, window: timedelta, now: datetime) -> float:
    """Elapsed fraction of the window ending at *resets_at*, clamped to [0, 1]."""
    if resets_at is None or window.total_seconds() <= 0:
        return 0.0
    start = _aware(resets_at) - window
    elapsed = (_aware(now) - start).total_seconds() / window.total_seconds()
    return min(max(elapsed, 0.0), 1.0)


def derive_metric(
    name: str,
    icon: str,
    limit: UsageLimit,
    window: timedelta,
    now: datetime,
    *,
    critical_threshold: int = constants.CRITICAL_THRESHOLD,
    warning_threshold: int = constants.WARNING_THRESHOLD,
) -> DisplayMetric:
    pct = percentage_for(limit.utilization)
    return DisplayMetric(
        name=name,
        icon=icon,
        limit=limit,
        percentage=pct,
        status=status_for(
            pct, critical_threshold=critical_threshold, warning_threshold=warning_threshold
        ),
        remaining_time=format_remaining(limit.resets_at, now),
        time_progress=time_progress(limit.resets_at, window, now),
    )


def build_metrics(
    snapshot: UsageSnapshot,
    now: datetime,
    *,
    critical_threshold: int = constants.CRITICAL_THRESHOLD,
    warning_threshold: int = constants.WARNING_THRESHOLD,
) -> tuple[DisplayMetric, ...]:
    """Derive one metric per present window, in fixed display order."""
    metrics = []
    for field_name, name, icon, window in constants.METRIC_WINDOWS:
        limit = getattr(snapshot, field_name)
        if limit is None:
            continue
        metrics.append(
            derive_metric(
                name, icon, limit, window, now,
                critical_threshold=critical_threshold,
                warning_threshold=warning_threshold,
            )
        )
    return tuple(metrics)


def format_last_updated(last_updated: datetime | None, now: datetime) -> str:
    if last_updated is None:
        return "Never"
    interval = (_aware(now) - _aware(last_updated)).total_seconds()
    if interval < 60:
        return f"{int(interval)}s ago"
    return f"{int(interval / 60)}m ago"


class DerivedMetricsCache:
    """Memoizes display metrics for the currently committed snapshot.

    ``update()`` is called on every commit, including re-commits of equal
    values; the metrics are recomputed lazily on the next read.
    """

    def __init__(
        self,
        *,
        critical_threshold: int = constants.CRITICAL_THRESHOLD,
        warning_threshold: int = constants.WARNING_THRESHOLD,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.critical_threshold = critical_threshold
        self.warning_threshold = warning_threshold
        self._clock = clock
        self._snapshot: UsageSnapshot | None = None
        self._all: tuple[DisplayMetric, ...] | None = None
        self._max: DisplayMetric | None = None

    @property
    def snapshot(self) -> UsageSnapshot | None:
        return self._snapshot

    def update(self, snapshot: UsageSnapshot | None) -> None:
        self._snapshot = snapshot
        self.invalidate()

    def invalidate(self) -> None:
        self._all = None
        self._max = None

    def all_metrics(self) -> tuple[DisplayMetric, ...]:
        if self._all is not None:
            return self._all
        if self._snapshot is None:
            return ()
        self._all = build_metrics(
            self._snapshot,
            self._clock(),
            critical_threshold=self.critical_threshold,
            warning_threshold=self.warning_threshold,
        )
        return self._all

    def max_metric(self) -> DisplayMetric:
        if self._max is not None:
            return self._max
        metrics = self.all_metrics()
        if not metrics:
            return UNKNOWN_METRIC
        # max() keeps the first of equal percentages
        self._max = max(metrics, key=lambda m: m.percentage)
        return self._max
