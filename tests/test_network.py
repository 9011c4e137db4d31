"""Tests for daemon/network.py."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

from usage_pulse.daemon.network import NetworkWatcher, ReachabilityProbe


class TestNetworkWatcher:
    def test_starts_available(self):
        assert NetworkWatcher().available is True

    def test_recovery_after_outage(self):
        watcher = NetworkWatcher()
        assert watcher.observe(False) is False
        assert watcher.observe(True) is True

    def test_repeated_available_is_not_recovery(self):
        watcher = NetworkWatcher()
        assert watcher.observe(True) is False
        assert watcher.observe(True) is False

    def test_one_recovery_per_transition(self):
        watcher = NetworkWatcher()
        watcher.observe(False)
        watcher.observe(False)
        assert watcher.observe(True) is True
        assert watcher.observe(True) is False

    def test_transitions_are_logged(self, caplog):
        watcher = NetworkWatcher()
        with caplog.at_level("INFO", logger="usage-pulse"):
            watcher.observe(False)
            watcher.observe(True)
        assert "Network unavailable" in caplog.text
        assert "Network available" in caplog.text


def _connect_ok(*args, **kwargs):
    sock = MagicMock()
    sock.__enter__ = lambda s: s
    sock.__exit__ = MagicMock(return_value=False)
    return sock


def _connect_fail(*args, **kwargs):
    raise OSError("unreachable")


class TestReachabilityProbe:
    def test_check_success(self):
        probe = ReachabilityProbe(lambda _: None, connect=_connect_ok)
        assert probe.check() is True

    def test_check_failure(self):
        probe = ReachabilityProbe(lambda _: None, connect=_connect_fail)
        assert probe.check() is False

    def test_reports_only_changes(self):
        seen: list[bool] = []
        results = iter([True, True, False, False, True])

        def connect(*args, **kwargs):
            if next(results):
                return _connect_ok()
            raise OSError("down")

        probe = ReachabilityProbe(seen.append, connect=connect)
        for _ in range(5):
            probe.poll_once()
        assert seen == [True, False, True]

    def test_start_and_stop(self):
        reported = threading.Event()
        probe = ReachabilityProbe(lambda _: reported.set(), connect=_connect_ok, interval=0.01)
        probe.start()
        assert reported.wait(timeout=5)
        probe.stop()
        assert probe._thread is None
