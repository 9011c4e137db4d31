"""The refresh operation and the single source of truth for usage state."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from usage_pulse import constants
from usage_pulse.daemon.retry import RetryScheduler
from usage_pulse.errors import UnauthorizedError, UsageError
from usage_pulse.models import DisplayMetric, FetchState, UsageSnapshot, UsageStatus
from usage_pulse.usage.client import UsageClient
from usage_pulse.usage.credentials import CredentialCache
from usage_pulse.usage.metrics import (
    DerivedMetricsCache,
    derive_metric,
    format_last_updated,
)
from usage_pulse.usage.notifications import AlertNotifier, NotificationPolicy, deliver

logger = logging.getLogger("usage-pulse")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FetchController:
    """Runs refreshes and owns :class:`FetchState`.

    Not thread-safe: every method must be called from the monitor thread.
    """

    def __init__(
        self,
        client: UsageClient,
        credentials: CredentialCache,
        retry: RetryScheduler,
        metrics: DerivedMetricsCache,
        policy: NotificationPolicy,
        notifier: AlertNotifier,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.credentials = credentials
        self.retry = retry
        self.metrics = metrics
        self.policy = policy
        self.notifier = notifier
        self._clock = clock
        self.state = FetchState()

    # --- entry points ---

    def refresh(self, manual: bool = False) -> None:
        """Refresh on request from outside the retry chain.

        Any pending retry is cancelled first. A manual refresh also starts a
        new retry chain; other sources keep the current retry count.
        """
        if manual:
            self.retry.reset()
        else:
            self.retry.cancel()
        self._perform()

    def recover_network(self) -> None:
        """Refresh after the network came back, starting a new retry chain."""
        self.retry.reset()
        self._perform()

    def run_retry(self, generation: int) -> bool:
        """Run a fired retry unless it was cancelled. Returns True if it ran."""
        if not self.retry.claim(generation):
            return False
        self._perform()
        return True

    # --- refresh algorithm ---

    def _perform(self) -> None:
        self.state.is_loading = True
        try:
            snapshot = self._fetch()
        except UsageError as exc:
            self.state.last_error = exc
            logger.warning(f"Usage fetch failed: {exc}")
            self.retry.maybe_schedule(exc)
        else:
            self._commit(snapshot)
        finally:
            self.state.is_loading = False

    def _fetch(self) -> UsageSnapshot:
        for attempt in (1, 2):
            token = self.credentials.token or self.credentials.load()
            if not token:
                raise UnauthorizedError("No OAuth token found. Is Claude Code installed?")
            try:
                return self.client.fetch(token)
            except UnauthorizedError:
                self.credentials.drop()
                if attempt == 1 and self.credentials.load():
                    logger.info("Got 401, retrying once with re-read credentials")
                    continue
                raise
        raise UnauthorizedError()

    def _commit(self, snapshot: UsageSnapshot) -> None:
        self.state.snapshot = snapshot
        self.state.last_updated = self._clock()
        self.state.last_error = None
        self.retry.reset()
        self.metrics.update(snapshot)

        top = self.metrics.max_metric()
        logger.info(f"Usage updated: {top.name} {top.percentage}% ({top.status.value})")

        alert = self.policy.on_snapshot_committed()
        if alert is not None:
            alert_id = deliver(alert, self.notifier)
            logger.info(f"Alert {alert_id}: {alert.metric_name} at {alert.percentage}%")

    # --- derived views ---

    def all_metrics(self) -> tuple[DisplayMetric, ...]:
        return self.metrics.all_metrics()

    def max_metric(self) -> DisplayMetric:
        return self.metrics.max_metric()

    def _five_hour_metric(self) -> DisplayMetric | None:
        snapshot = self.state.snapshot
        if snapshot is None or snapshot.five_hour is None:
            return None
        _, name, icon, window = constants.METRIC_WINDOWS[0]
        return derive_metric(
            name, icon, snapshot.five_hour, window, self._clock(),
            critical_threshold=self.metrics.critical_threshold,
            warning_threshold=self.metrics.warning_threshold,
        )

    def usage_status(self) -> UsageStatus:
        """Status of the five-hour session window."""
        metric = self._five_hour_metric()
        return metric.status if metric else UsageStatus.NORMAL

    def time_progress(self) -> float:
        metric = self._five_hour_metric()
        return metric.time_progress if metric else 0.0

    def last_updated_text(self) -> str:
        return format_last_updated(self.state.last_updated, self._clock())
