"""
Digital Command Pipeline
========================

Degenerate variant of the conditioning pipeline: the stick vector is mapped
to one drive symbol (W/A/S/D) or STOP, and a symbol is published only when
it differs from the last one sent.

Mapping:
    |v| < stop_radius        -> STOP
    |dx| > |dy|              -> D (dx > 0) or A
    otherwise                -> W (dy < 0, screen up) or S
"""

import math
from typing import Optional, Tuple
import logging

from .commands import DigitalCommand, QoS
from .conditioning import ConditionerConfig
from .pipeline import BasePipeline
from .safety_stop import SafetyStopConfig
from .scheduler import Scheduler
from ..link.session import LinkSession

logger = logging.getLogger(__name__)

STOP_RADIUS = 0.15


def vector_to_command(vector: Tuple[float, float],
                      stop_radius: float = STOP_RADIUS) -> DigitalCommand:
    """Map a screen-convention stick vector to a drive symbol."""
    dx, dy = vector
    if math.hypot(dx, dy) < stop_radius:
        return DigitalCommand.STOP
    if abs(dx) > abs(dy):
        return DigitalCommand.RIGHT if dx > 0 else DigitalCommand.LEFT
    return DigitalCommand.FORWARD if dy < 0 else DigitalCommand.BACK


class DigitalPipeline(BasePipeline):
    """
    Symbol pipeline sharing the tick, change gate and safety stop of the
    analog pipeline.

    STOP is always sent at-least-once; drive symbols at-most-once.
    """

    def __init__(self, link: LinkSession,
                 config: Optional[ConditionerConfig] = None,
                 safety_config: Optional[SafetyStopConfig] = None,
                 scheduler: Optional[Scheduler] = None,
                 topic: Optional[str] = None,
                 stop_radius: float = STOP_RADIUS):
        super().__init__(link, config, safety_config, scheduler, topic)
        self.stop_radius = stop_radius
        self._raw: Tuple[float, float] = (0.0, 0.0)
        self._last_sent: Optional[DigitalCommand] = None

    def _store_input(self, dx: float, dy: float):
        self._raw = (dx, dy)

    def tick(self):
        """Publish the current symbol if it changed."""
        with self._lock:
            self._tick_count += 1

            if not self._dragging:
                if not self._last_sent_is_stop():
                    self._publish_stop()
                return

            command = vector_to_command(self._raw, self.stop_radius)
            if command == self._last_sent:
                return

            if command.is_stop:
                self._publish_stop()
            elif self._publish(command, QoS.AT_MOST_ONCE):
                self._last_sent = command

    def reverse(self) -> bool:
        """
        Reverse button: send R once.

        R is a one-shot toggle for the vehicle; it does not change the
        change-gate state, so the next drag or release is handled normally.
        """
        logger.info("Reverse requested")
        return self._publish(DigitalCommand.REVERSE, QoS.AT_LEAST_ONCE)

    def _zero_input(self):
        self._raw = (0.0, 0.0)

    def _mark_stopped(self):
        self._last_sent = DigitalCommand.STOP

    def _last_sent_is_stop(self) -> bool:
        # Nothing sent yet counts as stopped
        return self._last_sent is None or self._last_sent.is_stop

    def _stop_command(self) -> DigitalCommand:
        return DigitalCommand.STOP

    @property
    def last_sent(self) -> Optional[DigitalCommand]:
        return self._last_sent
