"""
Unit tests for scheduling primitives.
"""

import threading
import time

import pytest

from teleop.control.scheduler import ManualScheduler, ThreadingScheduler, Ticker


class TestManualScheduler:
    """Tests for the deterministic scheduler."""

    def test_runs_in_deadline_order(self, scheduler):
        calls = []
        scheduler.call_later(0.2, lambda: calls.append("b"))
        scheduler.call_later(0.1, lambda: calls.append("a"))

        scheduler.advance(0.3)

        assert calls == ["a", "b"]

    def test_not_due_yet(self, scheduler):
        calls = []
        scheduler.call_later(0.5, lambda: calls.append(1))

        scheduler.advance(0.4)

        assert calls == []
        assert scheduler.pending == 1

    def test_clock_at_deadline_during_callback(self, scheduler):
        """Callbacks observe the clock at their own deadline."""
        seen = []
        scheduler.call_later(0.1, lambda: seen.append(scheduler.now()))

        scheduler.advance(1.0)

        assert seen == [pytest.approx(0.1)]
        assert scheduler.now() == pytest.approx(1.0)

    def test_cancel(self, scheduler):
        calls = []
        handle = scheduler.call_later(0.1, lambda: calls.append(1))
        handle.cancel()

        scheduler.advance(1.0)

        assert calls == []
        assert handle.cancelled
        assert scheduler.pending == 0

    def test_nested_scheduling_within_advance(self, scheduler):
        """A callback scheduling another due callback runs in the same advance."""
        calls = []

        def first():
            calls.append("first")
            scheduler.call_later(0.1, lambda: calls.append("second"))

        scheduler.call_later(0.1, first)
        scheduler.advance(0.25)

        assert calls == ["first", "second"]

    def test_callback_error_does_not_stop_advance(self, scheduler):
        calls = []

        def broken():
            raise RuntimeError("boom")

        scheduler.call_later(0.1, broken)
        scheduler.call_later(0.2, lambda: calls.append(1))
        scheduler.advance(0.3)

        assert calls == [1]


class TestThreadingScheduler:
    """Tests for the timer-thread scheduler."""

    def test_runs_callback(self):
        done = threading.Event()
        ThreadingScheduler().call_later(0.01, done.set)

        assert done.wait(1.0)

    def test_cancel_prevents_callback(self):
        done = threading.Event()
        handle = ThreadingScheduler().call_later(0.2, done.set)
        handle.cancel()

        assert not done.wait(0.4)

    def test_now_is_monotonic(self):
        scheduler = ThreadingScheduler()
        first = scheduler.now()

        assert scheduler.now() >= first


class TestTicker:
    """Tests for the periodic ticker."""

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            Ticker(0.0, lambda: None)

    def test_ticks_periodically(self):
        counter = []
        ticker = Ticker(0.01, lambda: counter.append(1))
        ticker.start()
        time.sleep(0.2)
        ticker.stop()

        assert ticker.stats["tick_count"] >= 5
        assert not ticker.is_running

    def test_survives_callback_errors(self):
        def broken():
            raise RuntimeError("boom")

        ticker = Ticker(0.01, broken)
        ticker.start()
        time.sleep(0.1)

        assert ticker.is_running
        ticker.stop()
        assert ticker.stats["tick_count"] >= 2

    def test_no_ticks_after_stop(self):
        counter = []
        ticker = Ticker(0.01, lambda: counter.append(1))
        ticker.start()
        time.sleep(0.05)
        ticker.stop()
        count = len(counter)
        time.sleep(0.05)

        assert len(counter) == count

    def test_start_twice_is_noop(self):
        ticker = Ticker(0.05, lambda: None)
        ticker.start()
        thread = ticker._thread
        ticker.start()

        assert ticker._thread is thread
        ticker.stop()
