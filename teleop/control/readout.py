"""
Status Readout
==============

Read-only projection of pipeline and link state, taken after a tick.
Nothing here writes back into the pipeline.
"""

import math
import time
from dataclasses import asdict, dataclass
from typing import Optional, Tuple

from .commands import AnalogCommand
from .pipeline import BasePipeline, ConditioningPipeline

NO_DIRECTION = "—"
MIN_DISPLAY_POWER = 0.15


def stick_power(vector: Tuple[float, float]) -> float:
    """Vector magnitude clamped to [0, 1]."""
    return min(1.0, math.hypot(vector[0], vector[1]))


def direction_text(vector: Tuple[float, float]) -> str:
    """
    Human readable direction and strength, e.g. "up 80%".

    90° sectors centred on the axes, angle measured with screen y flipped
    so that up is positive.
    """
    power = stick_power(vector)
    if power < MIN_DISPLAY_POWER:
        return NO_DIRECTION

    deg = math.degrees(math.atan2(-vector[1], vector[0]))
    if -45 <= deg < 45:
        direction = "right"
    elif 45 <= deg < 135:
        direction = "up"
    elif -135 <= deg < -45:
        direction = "down"
    else:
        direction = "left"
    return f"{direction}  {round(power * 100)}%"


@dataclass
class StatusSnapshot:
    """Display state after one tick."""
    timestamp: float = 0.0
    connected: bool = False
    link_status: str = ""
    topic: str = ""
    dragging: bool = False
    direction: str = NO_DIRECTION
    power: float = 0.0
    last_payload: Optional[str] = None
    throttle: Optional[float] = None
    steer: Optional[float] = None
    pending_stops: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def snapshot(pipeline: BasePipeline) -> StatusSnapshot:
    """Take a status snapshot of a pipeline and its link."""
    vector = pipeline.vector
    last = pipeline.last_command
    status = StatusSnapshot(
        timestamp=time.time(),
        connected=pipeline.link.connected,
        link_status=pipeline.link.status,
        topic=pipeline.topic,
        dragging=pipeline.dragging,
        direction=direction_text(vector),
        power=round(stick_power(vector), 3),
        last_payload=last.to_payload() if last is not None else None,
        pending_stops=pipeline.safety_stop.pending,
    )
    if isinstance(pipeline, ConditioningPipeline):
        sent: AnalogCommand = pipeline.sent_command
        status.throttle = sent.throttle
        status.steer = sent.steer
    return status
