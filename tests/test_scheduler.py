"""Tests for daemon/scheduler.py and daemon/lifecycle.py."""

from __future__ import annotations

from usage_pulse.daemon.lifecycle import EventSource
from usage_pulse.daemon.scheduler import PeriodicTrigger

from conftest import FakeTimers


def _trigger(timers: FakeTimers, interval: float = 60) -> tuple[PeriodicTrigger, list[int]]:
    ticks: list[int] = []
    return PeriodicTrigger(timers, ticks.append, interval), ticks


class TestPeriodicTrigger:
    def test_not_running_until_started(self, timers):
        trigger, _ = _trigger(timers)
        assert trigger.running is False
        assert timers.handles == []

    def test_start_arms_timer(self, timers):
        trigger, _ = _trigger(timers)
        trigger.start()
        assert trigger.running is True
        assert timers.delays == [60]

    def test_claimed_tick_rearms(self, timers):
        trigger, ticks = _trigger(timers)
        trigger.start()
        timers.handles[0].fire()
        assert trigger.claim(ticks[0]) is True
        assert timers.delays == [60, 60]

    def test_stop_rejects_late_tick(self, timers):
        trigger, ticks = _trigger(timers)
        trigger.start()
        timers.handles[0].fire()
        trigger.stop()
        assert trigger.claim(ticks[0]) is False
        assert trigger.running is False
        assert timers.handles[0].cancelled is True

    def test_reschedule_replaces_running_timer(self, timers):
        trigger, ticks = _trigger(timers)
        trigger.start()
        trigger.reschedule(120)
        assert timers.handles[0].cancelled is True
        assert timers.active[0].delay == 120
        timers.handles[0].fire()
        assert trigger.claim(ticks[0]) is False

    def test_reschedule_while_stopped_only_stores_interval(self, timers):
        trigger, _ = _trigger(timers)
        trigger.reschedule(300)
        assert trigger.running is False
        assert trigger.interval == 300
        assert timers.handles == []


class TestEventSource:
    def test_subscribe_and_emit(self):
        source: EventSource[int] = EventSource("test")
        seen: list[int] = []
        source.subscribe(seen.append)
        source.emit(1)
        source.emit(2)
        assert seen == [1, 2]

    def test_unsubscribe(self):
        source: EventSource[int] = EventSource("test")
        seen: list[int] = []
        source.subscribe(seen.append)
        source.unsubscribe(seen.append)
        source.emit(1)
        assert seen == []
        assert source.subscriber_count == 0

    def test_unsubscribe_unknown_is_noop(self):
        EventSource().unsubscribe(print)

    def test_handler_error_does_not_stop_others(self):
        source: EventSource[int] = EventSource("test")
        seen: list[int] = []

        def broken(_):
            raise RuntimeError("boom")

        source.subscribe(broken)
        source.subscribe(seen.append)
        source.emit(7)
        assert seen == [7]
