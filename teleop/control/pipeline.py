"""
Conditioning Pipeline
=====================

Turns sampled joystick input into a bounded, fail-safe command stream.

Entry points:
    feed / on_active  - sampler path, stores raw input, never publishes
    tick              - fixed-period clock: condition, change-gate, publish
    on_released       - release event: safety stop, bypasses the tick

Field ownership:
    sampler path   writes  AxisState.raw, dragging=True
    tick path      writes  AxisState.smoothed, AxisState.last_sent
    release path   writes  everything (zeroes the state)

The sampler path, tick() and the release path are serialized by one
re-entrant lock held only for bounded, non-blocking steps; publishes only
enqueue on the transport. A sampler event racing a release therefore lands
either wholly before it (and is zeroed) or wholly after it (a new drag).

Publishing only happens while the link is connected. A dropped publish
leaves last_sent unchanged, so the state is reconciled by the next
successful publish after reconnection.
"""

import threading
from typing import Optional, Tuple
import logging

from .commands import AnalogCommand, Command, QoS
from .conditioning import AxisState, ConditionerConfig, SignalConditioner, clamp_unit
from .safety_stop import SafetyStopConfig, SafetyStopController
from .scheduler import Scheduler, ThreadingScheduler
from ..link.session import LinkSession

logger = logging.getLogger(__name__)


class BasePipeline:
    """
    Shared publish, release and shutdown handling for both command variants.

    Subclasses implement tick() and _stop_command().
    """

    def __init__(self, link: LinkSession,
                 config: Optional[ConditionerConfig] = None,
                 safety_config: Optional[SafetyStopConfig] = None,
                 scheduler: Optional[Scheduler] = None,
                 topic: Optional[str] = None):
        self.config = config or ConditionerConfig()
        self.config.validate()
        self.link = link
        self.topic = topic or link.config.topic
        self._lock = threading.RLock()

        self._dragging = False
        self._vector: Tuple[float, float] = (0.0, 0.0)
        self._last_command: Optional[Command] = None

        self.safety_stop = SafetyStopController(
            self._publish_stop,
            scheduler or ThreadingScheduler(),
            (safety_config or SafetyStopConfig()).resolved(self.config.tick_interval_s),
        )

        # Statistics
        self._tick_count = 0
        self._publish_count = 0
        self._drop_count = 0

    # ------------------------------------------------------------------
    # Sampler interface
    # ------------------------------------------------------------------

    def on_active(self, vector: Tuple[float, float]):
        """
        Pointer active with normalized vector (dx, dy), screen convention
        (up = negative dy).
        """
        with self._lock:
            dx, dy = clamp_unit(vector[0]), clamp_unit(vector[1])
            self._vector = (dx, dy)
            self._store_input(dx, dy)
            self._dragging = True

    def on_released(self):
        """Pointer released: stop now."""
        self.release()

    def _store_input(self, dx: float, dy: float):
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Release / safety stop
    # ------------------------------------------------------------------

    def release(self) -> bool:
        """
        Zero the input state, publish a stop and start the stop burst.

        Returns:
            True if the immediate stop was issued
        """
        with self._lock:
            self._vector = (0.0, 0.0)
            self._zero_input()
            self._dragging = False
            return self.safety_stop.trigger()

    def stop(self) -> bool:
        """Manual stop button; identical to a release."""
        logger.info("Manual stop requested")
        return self.release()

    def shutdown(self) -> int:
        """
        Final stop before the clock is cancelled.

        Publishes one stop if the vehicle may still be moving, then flushes
        every outstanding burst command. Returns the number of stops sent.
        """
        with self._lock:
            sent = 0
            if self._dragging or not self._last_sent_is_stop():
                self._zero_input()
                self._dragging = False
                if self._publish_stop():
                    sent += 1
            return sent + self.safety_stop.flush()

    def _publish_stop(self) -> bool:
        """Publish one stop; on success the vehicle's last seen state is zero."""
        with self._lock:
            issued = self._publish(self._stop_command(), QoS.AT_LEAST_ONCE)
            if issued:
                self._mark_stopped()
            return issued

    def _zero_input(self):
        raise NotImplementedError

    def _mark_stopped(self):
        raise NotImplementedError

    def _last_sent_is_stop(self) -> bool:
        raise NotImplementedError

    def _stop_command(self) -> Command:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def _publish(self, command: Command, qos: QoS) -> bool:
        if not self.link.connected:
            self._drop_count += 1
            logger.debug(f"Link down, dropping {command.to_payload()}")
            return False

        if not self.link.publish(self.topic, command.to_payload(), int(qos)):
            self._drop_count += 1
            return False

        self._publish_count += 1
        self._last_command = command
        return True

    def tick(self):
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def dragging(self) -> bool:
        return self._dragging

    @property
    def vector(self) -> Tuple[float, float]:
        """Latest sampler vector (screen convention)."""
        return self._vector

    @property
    def last_command(self) -> Optional[Command]:
        """Last command handed to the transport."""
        return self._last_command

    @property
    def stats(self) -> dict:
        return {
            "tick_count": self._tick_count,
            "publish_count": self._publish_count,
            "drop_count": self._drop_count,
            **self.safety_stop.stats,
        }


class ConditioningPipeline(BasePipeline):
    """
    Analog throttle/steer pipeline.

    Vertical input is converted from screen convention to
    forward = positive throttle; horizontal input maps to steer.
    """

    def __init__(self, link: LinkSession,
                 config: Optional[ConditionerConfig] = None,
                 safety_config: Optional[SafetyStopConfig] = None,
                 scheduler: Optional[Scheduler] = None,
                 topic: Optional[str] = None):
        super().__init__(link, config, safety_config, scheduler, topic)
        self.throttle = AxisState()
        self.steer = AxisState()
        self.conditioner = SignalConditioner(self.config)

    def feed(self, throttle: float, steer: float):
        """Store raw axis values (forward = positive throttle)."""
        with self._lock:
            self.throttle.raw = clamp_unit(throttle)
            self.steer.raw = clamp_unit(steer)
            self._dragging = True

    def _store_input(self, dx: float, dy: float):
        self.feed(-dy, dx)

    def tick(self):
        """Condition both axes and publish if the change is significant."""
        with self._lock:
            self._tick_count += 1
            axes = (self.throttle, self.steer)

            if not self._dragging:
                if not self._last_sent_is_stop():
                    self._publish_stop()
                return

            candidates = tuple(self.conditioner.condition(axis) for axis in axes)

            if not self.conditioner.exceeds_delta(candidates, axes):
                return

            command = AnalogCommand(throttle=candidates[0], steer=candidates[1])
            if self._publish(command, QoS.AT_MOST_ONCE):
                # Both axes or neither
                self.throttle.last_sent, self.steer.last_sent = candidates

    def _zero_input(self):
        for axis in (self.throttle, self.steer):
            axis.raw = 0.0
            axis.smoothed = 0.0

    def _mark_stopped(self):
        self.throttle.last_sent = 0.0
        self.steer.last_sent = 0.0

    def _last_sent_is_stop(self) -> bool:
        return self.throttle.last_sent == 0.0 and self.steer.last_sent == 0.0

    def _stop_command(self) -> AnalogCommand:
        return AnalogCommand.stop()

    @property
    def sent_command(self) -> AnalogCommand:
        """Command matching the current last_sent values."""
        return AnalogCommand(self.throttle.last_sent, self.steer.last_sent)
