"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from usage_pulse import config
from usage_pulse.daemon.monitor import UsageMonitor
from usage_pulse.errors import UsageError
from usage_pulse.models import UsageLimit, UsageSnapshot

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def tmp_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect config/data directory to a temp dir for every test."""
    cfg_dir = tmp_path / "usage-pulse-test"
    cfg_dir.mkdir()
    monkeypatch.setattr(config, "CONFIG_DIR", cfg_dir)
    monkeypatch.setattr(config, "CONFIG_FILE", cfg_dir / "config.toml")
    return cfg_dir


class FakeHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the callback the way a timer thread would, even if cancelled."""
        self.callback()


class FakeTimers:
    """Records deferred calls; tests fire them by hand."""

    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    @property
    def delays(self) -> list[float]:
        return [h.delay for h in self.handles]


class FakeClient:
    """Returns queued results in order; an exception instance is raised."""

    def __init__(self, *results: UsageSnapshot | UsageError) -> None:
        self.results = list(results)
        self.tokens: list[str] = []

    def fetch(self, token: str) -> UsageSnapshot:
        self.tokens.append(token)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def calls(self) -> int:
        return len(self.tokens)


class FakeStore:
    def __init__(self, *tokens: str | None) -> None:
        self.tokens = list(tokens) or ["tok"]
        self.get_calls = 0
        self.clear_calls = 0

    def get(self) -> str | None:
        self.get_calls += 1
        if len(self.tokens) > 1:
            return self.tokens.pop(0)
        return self.tokens[0]

    def clear(self) -> None:
        self.clear_calls += 1


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str, str, str]] = []

    def display(self, title: str, body: str, sound: str, interruption_level: str, id: str) -> None:
        self.calls.append((title, body, sound, interruption_level, id))


def make_snapshot(
    five_hour: float | None = 10.0,
    seven_day: float | None = None,
    opus: float | None = None,
    sonnet: float | None = None,
    resets_in: timedelta = timedelta(hours=2),
) -> UsageSnapshot:
    def limit(value: float | None) -> UsageLimit | None:
        if value is None:
            return None
        return UsageLimit(utilization=value, resets_at=NOW + resets_in)

    return UsageSnapshot(
        five_hour=limit(five_hour),
        seven_day=limit(seven_day),
        seven_day_opus=limit(opus),
        seven_day_sonnet=limit(sonnet),
    )


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_monitor(timers: FakeTimers, notifier: RecordingNotifier):
    """Build a monitor wired to fakes; events are handled synchronously."""

    def _make(*results, store: FakeStore | None = None, **kwargs) -> UsageMonitor:
        monitor = UsageMonitor(
            FakeClient(*results),
            store or FakeStore(),
            notifier,
            timers=timers,
            clock=lambda: NOW,
            **kwargs,
        )
        return monitor

    return _make
