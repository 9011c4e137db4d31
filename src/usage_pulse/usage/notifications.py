"""Critical-usage alerts with hysteresis, and their delivery."""

from __future__ import annotations

import logging
import shutil
import subprocess
import uuid
from typing import Protocol

from usage_pulse import constants
from usage_pulse.models import AlertEvent, NotificationState
from usage_pulse.usage.metrics import DerivedMetricsCache

logger = logging.getLogger("usage-pulse")


class AlertNotifier(Protocol):
    def display(
        self, title: str, body: str, sound: str, interruption_level: str, id: str
    ) -> None: ...


class NotificationPolicy:
    """Decides whether a committed snapshot should raise an alert.

    Alerts fire on the first crossing of the critical threshold and then on
    every further ``RENOTIFY_STEP`` point increase. Dropping back below the
    threshold re-arms the first-crossing alert.
    """

    def __init__(
        self,
        metrics: DerivedMetricsCache,
        *,
        critical_threshold: int = constants.CRITICAL_THRESHOLD,
        enabled: bool = True,
    ) -> None:
        self._metrics = metrics
        self.critical_threshold = critical_threshold
        self.enabled = enabled
        self.state = NotificationState()

    def on_snapshot_committed(self) -> AlertEvent | None:
        if not self.enabled or self._metrics.snapshot is None:
            return None

        top = self._metrics.max_metric()
        if top.percentage < self.critical_threshold:
            self.state.has_notified_critical = False
            self.state.last_notified_percentage = top.percentage
            return None

        should_notify = (
            not self.state.has_notified_critical
            or top.percentage >= self.state.last_notified_percentage + constants.RENOTIFY_STEP
        )
        if not should_notify:
            return None

        self.state.has_notified_critical = True
        self.state.last_notified_percentage = top.percentage
        return AlertEvent(
            metric_name=top.name,
            percentage=top.percentage,
            remaining_time=top.remaining_time,
        )


def deliver(alert: AlertEvent, notifier: AlertNotifier) -> str:
    """Format *alert* and hand it to *notifier*. Returns the alert id."""
    alert_id = f"{constants.ALERT_ID_PREFIX}{uuid.uuid4()}"
    body = f"{alert.metric_name} is at {alert.percentage}%, resets in {alert.remaining_time}"
    notifier.display(
        constants.ALERT_TITLE,
        body,
        constants.ALERT_SOUND,
        constants.ALERT_INTERRUPTION_LEVEL,
        alert_id,
    )
    return alert_id


class LogNotifier:
    """Writes alerts to the log."""

    def display(self, title: str, body: str, sound: str, interruption_level: str, id: str) -> None:
        logger.warning(f"{title}: {body}")


class DesktopNotifier:
    """Sends alerts through ``notify-send``; falls back to the log."""

    def __init__(self, executable: str | None = None) -> None:
        self.executable = executable or shutil.which("notify-send")
        self._fallback = LogNotifier()

    def display(self, title: str, body: str, sound: str, interruption_level: str, id: str) -> None:
        if not self.executable:
            self._fallback.display(title, body, sound, interruption_level, id)
            return
        urgency = "critical" if interruption_level == constants.ALERT_INTERRUPTION_LEVEL else "normal"
        cmd = [self.executable, "--app-name", constants.APP_NAME, "--urgency", urgency, title, body]
        try:
            subprocess.run(cmd, capture_output=True, timeout=10, check=False)
        except (OSError, subprocess.TimeoutExpired):
            logger.warning("notify-send failed, logging alert instead", exc_info=True)
            self._fallback.display(title, body, sound, interruption_level, id)
