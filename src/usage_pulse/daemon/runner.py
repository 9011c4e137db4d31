"""Daemon process management and one-shot fetches."""

from __future__ import annotations

import logging
import os
import signal
import time
from pathlib import Path
from typing import Any

import click

from usage_pulse import config, constants
from usage_pulse.daemon.events import RefreshRequested
from usage_pulse.daemon.monitor import StatusReport, UsageMonitor
from usage_pulse.daemon.network import ReachabilityProbe
from usage_pulse.daemon.signals import SignalHandler
from usage_pulse.models import DisplayMetric
from usage_pulse.usage.client import UsageClient
from usage_pulse.usage.credentials import ClaudeCredentialsFile
from usage_pulse.usage.notifications import AlertNotifier, DesktopNotifier, LogNotifier

logger = logging.getLogger("usage-pulse")


def _pid_file() -> Path:
    return config.data_dir() / constants.PID_FILE_NAME


def _log_file() -> Path:
    return config.data_dir() / constants.LOG_FILE_NAME


def _setup_logging(foreground: bool) -> None:
    log_file = _log_file()
    handlers: list[logging.Handler] = [logging.FileHandler(str(log_file))]
    if foreground:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )


def _is_running() -> int | None:
    """Check if daemon is running. Returns PID if running, None otherwise."""
    pid_file = _pid_file()
    if not pid_file.exists():
        return None
    try:
        pid = int(pid_file.read_text().strip())
        os.kill(pid, 0)  # Check if process exists
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        pid_file.unlink(missing_ok=True)
        return None


def _write_pid() -> None:
    _pid_file().write_text(str(os.getpid()))


def _remove_pid() -> None:
    _pid_file().unlink(missing_ok=True)


def build_monitor(
    cfg: dict[str, Any] | None = None,
    notifier: AlertNotifier | None = None,
    **kwargs: Any,
) -> UsageMonitor:
    """Construct a monitor from configuration.

    Keyword arguments override the values taken from *cfg*.
    """
    cfg = cfg if cfg is not None else config.load_config()
    notifications = cfg.get("notifications", {})
    api = cfg.get("api", {})
    options: dict[str, Any] = {
        "interval": config.refresh_interval(cfg),
        "critical_threshold": notifications.get("critical_threshold", constants.CRITICAL_THRESHOLD),
        "warning_threshold": notifications.get("warning_threshold", constants.WARNING_THRESHOLD),
        "notifications_enabled": notifications.get("enabled", True),
    }
    options.update(kwargs)
    return UsageMonitor(
        UsageClient(url=api.get("usage_url", constants.USAGE_API_URL)),
        ClaudeCredentialsFile(config.credentials_path(cfg)),
        notifier or DesktopNotifier(),
        **options,
    )


def format_metric(metric: DisplayMetric) -> str:
    return (
        f"{metric.name:<16} {metric.percentage:>3}%  {metric.status.value:<9}"
        f"  resets in {metric.remaining_time}"
    )


def fetch_once(cfg: dict[str, Any] | None = None) -> StatusReport:
    """Run a single manual refresh on the calling thread and report the result."""
    monitor = build_monitor(cfg, notifier=LogNotifier(), notifications_enabled=False)
    try:
        monitor.handle(RefreshRequested(manual=True, source="cli"))
        return monitor.status()
    finally:
        # A one-shot fetch never waits for backoff retries.
        monitor.retry.reset()


def _daemon_loop(handler: SignalHandler) -> None:
    """Main daemon loop."""
    cfg = config.load_config()
    monitor = build_monitor(cfg)
    monitor.attach_activation(handler.activation)
    monitor.attach_manual_refresh(handler.refresh_requested)
    monitor.attach(handler.reload_requested, lambda _: monitor.apply_config(config.load_config()))

    probe_cfg = cfg.get("monitor", {})
    monitor.attach_probe(
        lambda callback: ReachabilityProbe(
            callback,
            host=probe_cfg.get("probe_host", constants.NETWORK_PROBE_HOST),
            interval=probe_cfg.get("network_probe_interval", constants.NETWORK_PROBE_INTERVAL_SECONDS),
        )
    )

    logger.info(f"Daemon started (PID {os.getpid()})")
    monitor.start()
    try:
        while not handler.should_stop:
            handler.wait(1.0)
    finally:
        monitor.stop()
    logger.info("Daemon shutting down")


def _serve() -> None:
    """Own the PID file for the lifetime of the monitor."""
    _write_pid()
    handler = SignalHandler()
    handler.install()
    try:
        _daemon_loop(handler)
    finally:
        _remove_pid()


def _detach() -> None:
    """Start a new session and point stdio at /dev/null."""
    os.setsid()
    null_fd = os.open(os.devnull, os.O_RDWR)
    for fd in (0, 1, 2):
        os.dup2(null_fd, fd)
    os.close(null_fd)


def start_daemon(foreground: bool) -> None:
    """Start the usage-pulse daemon."""
    existing = _is_running()
    if existing:
        click.echo(f"usage-pulse is already running (PID {existing})", err=True)
        raise SystemExit(1)

    _setup_logging(foreground)

    if foreground:
        click.echo("Monitoring usage in the foreground, Ctrl+C to stop")
        _serve()
        return

    child = os.fork()
    if child:
        click.echo(f"usage-pulse started (PID {child}), logging to {_log_file()}")
        return
    _detach()
    _serve()


def stop_daemon(wait_seconds: float = 5.0) -> None:
    """Send SIGTERM to the daemon and wait for its PID file to go away."""
    pid = _is_running()
    if pid is None:
        click.echo("Daemon is not running")
        return

    os.kill(pid, signal.SIGTERM)
    deadline = time.monotonic() + wait_seconds
    while time.monotonic() < deadline:
        if _is_running() is None:
            click.echo(f"Stopped usage-pulse (PID {pid})")
            return
        time.sleep(0.25)
    click.echo(f"Sent SIGTERM to PID {pid}; it is still shutting down")


def signal_daemon(signum: int, action: str) -> None:
    """Send *signum* to the running daemon."""
    pid = _is_running()
    if pid is None:
        click.echo("Daemon is not running", err=True)
        raise SystemExit(1)
    os.kill(pid, signum)
    click.echo(f"Requested {action} (PID {pid})")


def print_report(report: StatusReport) -> None:
    if report.metrics:
        for metric in report.metrics:
            click.echo(format_metric(metric))
    else:
        click.echo("Usage:   no data")
    if report.state.last_error is not None:
        click.echo(f"Error:   {report.state.last_error}")
    click.echo(f"Updated: {report.last_updated_text}")


def show_status() -> None:
    """Show daemon state and current usage."""
    pid = _is_running()
    if pid:
        click.echo(f"Daemon:  running (PID {pid})")
    else:
        click.echo("Daemon:  stopped")

    print_report(fetch_once())
