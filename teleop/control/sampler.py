"""
Stick Sampler
=============

Converts pointer positions on a square joystick pad into the normalized
vector consumed by the pipelines.

The knob travel is limited to a circle of radius `travel_ratio * size`
around the pad centre; positions beyond it are pulled back onto the circle
along the same direction. The vector keeps screen convention (up = -dy).
"""

import math
from typing import Protocol, Tuple
import logging

logger = logging.getLogger(__name__)


class StickListener(Protocol):
    """Receiver of sampler events (implemented by the pipelines)."""

    def on_active(self, vector: Tuple[float, float]) -> None: ...

    def on_released(self) -> None: ...


class StickSampler:
    """
    Pointer-to-vector adapter for a square pad.

    Args:
        listener: Receives on_active / on_released
        size: Pad edge length in pointer units
        travel_ratio: Maximum knob travel as a fraction of `size`
    """

    def __init__(self, listener: StickListener, size: float = 1.0,
                 travel_ratio: float = 0.42):
        if size <= 0 or travel_ratio <= 0:
            raise ValueError("size and travel_ratio must be positive")
        self.listener = listener
        self.size = size
        self.travel_ratio = travel_ratio
        self._active = False
        self._vector: Tuple[float, float] = (0.0, 0.0)

    @property
    def travel_radius(self) -> float:
        return self.size * self.travel_ratio

    def normalize(self, x: float, y: float) -> Tuple[float, float]:
        """Pad position -> vector in the unit disc."""
        radius = self.travel_radius
        dx = x - self.size / 2
        dy = y - self.size / 2
        distance = math.hypot(dx, dy)
        if distance > radius:
            scale = radius / distance
            dx *= scale
            dy *= scale
        return (dx / radius, dy / radius)

    def pan(self, x: float, y: float) -> Tuple[float, float]:
        """Pan start or update at pad position (x, y)."""
        self._vector = self.normalize(x, y)
        self._active = True
        self.listener.on_active(self._vector)
        return self._vector

    def end(self):
        """Pan end or cancel."""
        self._active = False
        self._vector = (0.0, 0.0)
        self.listener.on_released()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def vector(self) -> Tuple[float, float]:
        return self._vector
