"""
Scheduling Primitives
=====================

Timers used by the control path:

- Ticker: fixed-period callback on its own thread. Deadlines advance by a
  whole period each tick so the cadence does not drift; if the loop falls
  more than a period behind (GC pause, suspended process) it re-anchors
  instead of firing a catch-up burst.
- ThreadingScheduler: one-shot delayed callbacks (threading.Timer). Used
  for the safety-stop burst, which must not depend on the main Ticker.
- ManualScheduler: deterministic clock for simulation replay and tests.

Callback exceptions are logged, never propagated into the timer thread.
"""

import heapq
import itertools
import threading
import time
from typing import Callable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


def _run_guarded(callback: Callable[[], None], what: str):
    try:
        callback()
    except Exception as e:
        logger.error(f"{what} callback error: {e}")


class TimerHandle:
    """Handle returned by call_later(); allows cancellation."""

    def __init__(self, cancel_fn: Callable[[], None]):
        self._cancel_fn = cancel_fn
        self._cancelled = False

    def cancel(self):
        if not self._cancelled:
            self._cancelled = True
            self._cancel_fn()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class Scheduler:
    """Interface for one-shot delayed callbacks."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    def now(self) -> float:
        raise NotImplementedError


class ThreadingScheduler(Scheduler):
    """One-shot callbacks on daemon threading.Timer threads."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(
            max(0.0, delay_s), _run_guarded, args=(callback, "Scheduled")
        )
        timer.daemon = True
        timer.start()
        return TimerHandle(timer.cancel)

    def now(self) -> float:
        return time.monotonic()


class ManualScheduler(Scheduler):
    """
    Scheduler driven by an explicit clock.

    Callbacks run inside advance() in deadline order, including callbacks
    scheduled by other callbacks while advancing.
    """

    def __init__(self, start_time: float = 0.0):
        self._now = start_time
        self._queue: List[Tuple[float, int, Callable[[], None], TimerHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(lambda: None)
        deadline = self._now + max(0.0, delay_s)
        heapq.heappush(self._queue, (deadline, next(self._counter), callback, handle))
        return handle

    def advance(self, dt: float):
        """Move the clock forward by dt seconds, running due callbacks."""
        target = self._now + dt
        while self._queue and self._queue[0][0] <= target:
            deadline, _, callback, handle = heapq.heappop(self._queue)
            self._now = deadline
            if not handle.cancelled:
                _run_guarded(callback, "Scheduled")
        self._now = target

    @property
    def pending(self) -> int:
        """Number of scheduled, not yet cancelled callbacks."""
        return sum(1 for entry in self._queue if not entry[3].cancelled)


class Ticker:
    """
    Periodic callback on a dedicated thread.

    Not tied to any display frame rate. stop() is safe to call from any
    thread except the tick callback itself.
    """

    def __init__(self, interval_s: float, callback: Callable[[], None],
                 name: str = "ticker"):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}")
        self.interval_s = interval_s
        self._callback = callback
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._tick_count = 0
        self._overruns = 0

    def start(self):
        """Start ticking. No-op if already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.info(f"Ticker '{self._name}' started at {1.0 / self.interval_s:.1f}Hz")

    def stop(self, timeout: float = 1.0):
        """Cancel the ticker and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info(f"Ticker '{self._name}' stopped after {self._tick_count} ticks")

    def _run(self):
        next_tick = time.monotonic() + self.interval_s

        while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
            _run_guarded(self._callback, f"Ticker '{self._name}'")
            self._tick_count += 1

            next_tick += self.interval_s
            now = time.monotonic()
            if now - next_tick > self.interval_s:
                self._overruns += 1
                logger.debug(f"Ticker '{self._name}' fell behind, re-anchoring")
                next_tick = now + self.interval_s

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stats(self) -> dict:
        return {
            "tick_count": self._tick_count,
            "overruns": self._overruns,
        }
