"""
Safety-Stop Controller
======================

Guarantees a stop reaches the vehicle when the operator lets go.

On trigger:
    1. One stop command is published immediately (at-least-once).
    2. `burst_count - 1` further stop commands follow, spaced by
       `burst_interval_s`, each at-least-once.

The burst is a fixed redundancy against loss and reordering on the
transport. It does not track acknowledgments, and each burst runs on its
own one-shot timer chain so cancelling the main ticker never cuts it short.

The caller (the pipeline) owns the axis state: it zeroes raw/smoothed
before triggering and marks last_sent once the immediate publish went out.
"""

import threading
from dataclasses import dataclass, replace
from typing import Callable, List, Optional
import logging

from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


DEFAULT_BURST_INTERVAL_S = 0.08


@dataclass
class SafetyStopConfig:
    """Stop burst parameters."""
    burst_count: int = 3                        # Total stop commands per release
    burst_interval_s: Optional[float] = None    # Spacing; None = tick interval

    def validate(self):
        if self.burst_count < 1:
            raise ValueError(f"burst_count must be >= 1, got {self.burst_count}")
        if self.burst_interval_s is not None and self.burst_interval_s <= 0.0:
            raise ValueError(f"burst_interval_s must be > 0, got {self.burst_interval_s}")

    def resolved(self, tick_interval_s: float) -> 'SafetyStopConfig':
        """Copy with an unset burst interval filled in from the tick interval."""
        if self.burst_interval_s is not None:
            return replace(self)
        return replace(self, burst_interval_s=tick_interval_s)


class _StopBurst:
    """One chain of delayed stop publishes."""

    def __init__(self, remaining: int):
        self.remaining = remaining
        self.handle: Optional[TimerHandle] = None


class SafetyStopController:
    """
    Issues the immediate stop and its redundancy burst.

    Args:
        publish_stop: Callable publishing one stop command, returning True
            if the publish was issued (link connected)
        scheduler: One-shot scheduler for the delayed burst commands
        config: Burst parameters
    """

    def __init__(self, publish_stop: Callable[[], bool],
                 scheduler: Scheduler,
                 config: Optional[SafetyStopConfig] = None):
        self.config = (config or SafetyStopConfig()).resolved(DEFAULT_BURST_INTERVAL_S)
        self.config.validate()
        self._publish_stop = publish_stop
        self._scheduler = scheduler
        self._lock = threading.Lock()
        self._bursts: List[_StopBurst] = []

        # Statistics
        self._trigger_count = 0
        self._stops_issued = 0
        self._stops_dropped = 0

    def trigger(self) -> bool:
        """
        Publish a stop now and schedule the rest of the burst.

        Returns:
            True if the immediate stop was issued
        """
        self._trigger_count += 1
        issued = self._send("immediate")

        if self.config.burst_count > 1:
            burst = _StopBurst(self.config.burst_count - 1)
            with self._lock:
                self._bursts.append(burst)
                self._schedule_next(burst)

        logger.info(
            f"Safety stop triggered (immediate {'sent' if issued else 'dropped'}, "
            f"{self.config.burst_count - 1} queued)"
        )
        return issued

    def flush(self) -> int:
        """
        Publish every outstanding burst command immediately.

        Used on shutdown. Returns the number of stop commands published.
        """
        with self._lock:
            bursts = self._bursts
            self._bursts = []
            for burst in bursts:
                if burst.handle:
                    burst.handle.cancel()

        pending = sum(burst.remaining for burst in bursts)
        sent = 0
        for _ in range(pending):
            if self._send("flush"):
                sent += 1

        if pending:
            logger.info(f"Flushed {pending} pending stop commands ({sent} sent)")
        return sent

    def _schedule_next(self, burst: _StopBurst):
        burst.handle = self._scheduler.call_later(
            self.config.burst_interval_s, lambda: self._burst_step(burst)
        )

    def _burst_step(self, burst: _StopBurst):
        with self._lock:
            if burst not in self._bursts:
                return
            burst.remaining -= 1
            if burst.remaining > 0:
                self._schedule_next(burst)
            else:
                self._bursts.remove(burst)

        self._send("burst")

    def _send(self, kind: str) -> bool:
        issued = self._publish_stop()
        if issued:
            self._stops_issued += 1
        else:
            self._stops_dropped += 1
            logger.debug(f"Stop command dropped ({kind}): link not connected")
        return issued

    @property
    def pending(self) -> int:
        """Stop commands still scheduled."""
        with self._lock:
            return sum(burst.remaining for burst in self._bursts)

    @property
    def stats(self) -> dict:
        return {
            "trigger_count": self._trigger_count,
            "stops_issued": self._stops_issued,
            "stops_dropped": self._stops_dropped,
        }
