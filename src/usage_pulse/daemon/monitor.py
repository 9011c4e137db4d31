"""The usage monitor: one thread owning all usage state.

Timers, the reachability probe, signal handlers and the CLI never touch
state directly. They post messages with :meth:`UsageMonitor.post` and the
monitor thread handles them one at a time. A refresh performs its HTTP
request on the monitor thread, so refreshes requested while one is in
flight queue up behind it; the in-flight request is never cancelled.
"""

from __future__ import annotations

import dataclasses
import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from usage_pulse import config, constants
from usage_pulse.daemon.controller import FetchController, _utcnow
from usage_pulse.daemon.events import (
    ActivationChanged,
    IntervalChanged,
    NetworkChanged,
    RefreshRequested,
    RetryFired,
    SettingsChanged,
    StatusQuery,
    TimerTick,
)
from usage_pulse.daemon.lifecycle import EventSource
from usage_pulse.daemon.network import NetworkWatcher, ReachabilityProbe
from usage_pulse.daemon.retry import RetryScheduler
from usage_pulse.daemon.scheduler import PeriodicTrigger
from usage_pulse.daemon.timers import ThreadTimers, Timers
from usage_pulse.models import DisplayMetric, FetchState
from usage_pulse.usage.client import UsageClient
from usage_pulse.usage.credentials import CredentialCache, CredentialStore
from usage_pulse.usage.metrics import DerivedMetricsCache
from usage_pulse.usage.notifications import AlertNotifier, NotificationPolicy

logger = logging.getLogger("usage-pulse")

_STOP = object()


@dataclass(frozen=True)
class StatusReport:
    state: FetchState
    metrics: tuple[DisplayMetric, ...]
    max_metric: DisplayMetric
    retry_count: int
    retry_pending: bool
    network_available: bool
    timer_running: bool
    last_updated_text: str


class UsageMonitor:
    """Owns the fetch controller and everything that drives it."""

    def __init__(
        self,
        client: UsageClient,
        store: CredentialStore,
        notifier: AlertNotifier,
        *,
        interval: int = constants.DEFAULT_REFRESH_INTERVAL,
        critical_threshold: int = constants.CRITICAL_THRESHOLD,
        warning_threshold: int = constants.WARNING_THRESHOLD,
        notifications_enabled: bool = True,
        timers: Timers | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._queue: queue.SimpleQueue[Any] = queue.SimpleQueue()
        timers = timers or ThreadTimers()

        self.retry = RetryScheduler(timers, lambda gen: self.post(RetryFired(gen)))
        self.metrics = DerivedMetricsCache(
            critical_threshold=critical_threshold,
            warning_threshold=warning_threshold,
            clock=clock,
        )
        self.policy = NotificationPolicy(
            self.metrics,
            critical_threshold=critical_threshold,
            enabled=notifications_enabled,
        )
        self.controller = FetchController(
            client,
            CredentialCache(store),
            self.retry,
            self.metrics,
            self.policy,
            notifier,
            clock=clock,
        )
        self.trigger = PeriodicTrigger(
            timers, lambda gen: self.post(TimerTick(gen)), config.clamp_interval(interval)
        )
        self.network = NetworkWatcher()

        self._probe: ReachabilityProbe | None = None
        self._subscriptions: list[tuple[EventSource[Any], Callable[[Any], None]]] = []
        self._thread: threading.Thread | None = None

    # --- wiring (call before start) ---

    def attach(self, source: EventSource[Any], handler: Callable[[Any], None]) -> None:
        """Subscribe *handler* to *source*; detached again by :meth:`stop`."""
        source.subscribe(handler)
        self._subscriptions.append((source, handler))

    def attach_activation(self, source: EventSource[bool]) -> None:
        self.attach(source, lambda active: self.post(ActivationChanged(bool(active))))

    def attach_manual_refresh(self, source: EventSource[Any]) -> None:
        self.attach(source, lambda _: self.post(RefreshRequested(manual=True, source="manual")))

    def attach_probe(self, probe_factory: Callable[[Callable[[bool], None]], ReachabilityProbe]) -> None:
        self._probe = probe_factory(lambda available: self.post(NetworkChanged(available)))

    # --- lifecycle ---

    def start(self) -> None:
        """Read credentials, start the monitor thread and the first refresh."""
        self.controller.credentials.load()
        self._thread = threading.Thread(target=self._run, daemon=True, name="UsageMonitor")
        self._thread.start()
        if self._probe is not None:
            self._probe.start()
        self.post(ActivationChanged(True))
        logger.info(f"Usage monitor started (refresh every {self.trigger.interval}s)")

    def stop(self) -> None:
        """Shut down: detach signals, stop probe and thread, then timers."""
        for source, handler in self._subscriptions:
            source.unsubscribe(handler)
        self._subscriptions.clear()

        if self._probe is not None:
            self._probe.stop()

        if self._thread is not None:
            self.post(_STOP)
            self._thread.join(timeout=constants.REQUEST_TIMEOUT_SECONDS + 5)
            self._thread = None

        self.trigger.stop()
        self.retry.cancel()
        logger.info("Usage monitor stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def post(self, event: Any) -> None:
        """Queue *event* for the monitor thread. Safe from any thread."""
        self._queue.put(event)

    def request_refresh(self) -> None:
        self.post(RefreshRequested(manual=True, source="manual"))

    def apply_config(self, cfg: dict[str, Any]) -> None:
        """Post interval and notification settings from a loaded config."""
        notifications = cfg.get("notifications", {})
        self.post(IntervalChanged(config.refresh_interval(cfg)))
        self.post(
            SettingsChanged(
                notifications_enabled=bool(notifications.get("enabled", True)),
                critical_threshold=int(
                    notifications.get("critical_threshold", constants.CRITICAL_THRESHOLD)
                ),
                warning_threshold=int(
                    notifications.get("warning_threshold", constants.WARNING_THRESHOLD)
                ),
            )
        )

    def query(self, timeout: float | None = None) -> StatusReport:
        """Ask the monitor thread for a consistent status report."""
        future: Future[StatusReport] = Future()
        self.post(StatusQuery(future))
        return future.result(timeout=timeout)

    # --- monitor thread ---

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            if event is _STOP:
                break
            try:
                self.handle(event)
            except Exception:
                logger.exception(f"Error handling {event!r}")

    def handle(self, event: Any) -> None:
        """Apply one message. Runs on the monitor thread only."""
        if isinstance(event, RefreshRequested):
            logger.debug(f"Refresh requested ({event.source})")
            self.controller.refresh(manual=event.manual)
        elif isinstance(event, TimerTick):
            if self.trigger.claim(event.generation):
                self.controller.refresh(manual=False)
        elif isinstance(event, RetryFired):
            self.controller.run_retry(event.generation)
        elif isinstance(event, NetworkChanged):
            if self.network.observe(event.available):
                self.controller.recover_network()
        elif isinstance(event, ActivationChanged):
            if event.active:
                self.trigger.start()
                self.controller.refresh(manual=False)
            else:
                logger.info("Paused: refresh timer stopped")
                self.trigger.stop()
        elif isinstance(event, IntervalChanged):
            self.trigger.reschedule(config.clamp_interval(event.seconds))
            logger.info(f"Refresh interval set to {self.trigger.interval}s")
        elif isinstance(event, SettingsChanged):
            self._apply_settings(event)
        elif isinstance(event, StatusQuery):
            try:
                report = self.status()
            except Exception as exc:
                event.future.set_exception(exc)
                raise
            event.future.set_result(report)
        else:
            logger.warning(f"Ignoring unknown event {event!r}")

    def _apply_settings(self, event: SettingsChanged) -> None:
        # Thresholds apply from the next committed snapshot.
        self.policy.enabled = event.notifications_enabled
        self.policy.critical_threshold = event.critical_threshold
        self.metrics.critical_threshold = event.critical_threshold
        self.metrics.warning_threshold = event.warning_threshold

    def status(self) -> StatusReport:
        return StatusReport(
            state=dataclasses.replace(self.controller.state),
            metrics=self.controller.all_metrics(),
            max_metric=self.controller.max_metric(),
            retry_count=self.retry.count,
            retry_pending=self.retry.pending,
            network_available=self.network.available,
            timer_running=self.trigger.running,
            last_updated_text=self.controller.last_updated_text(),
        )
