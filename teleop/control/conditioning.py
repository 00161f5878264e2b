"""
Signal Conditioning Module
==========================

Per-axis conditioning of sampled joystick values:

    raw --> EMA smoothing --> deadzone --> quantization --> candidate

The EMA state (`smoothed`) is kept across ticks. Deadzone and quantization
are applied to a copy, so the filter state is never biased toward zero.

Quantization reduces the transmitted values to a small finite set
(21 levels for the default 0.10 step), which keeps the change gate
stable against small oscillations.
"""

import math
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

# Tolerance used so that exact ties (0.15 / 0.10 = 1.4999999...) still
# round away from zero.
_TIE_EPSILON = 1e-9


@dataclass
class ConditionerConfig:
    """Conditioning and change-gate parameters."""
    alpha: float = 0.35             # EMA coefficient, higher = more responsive
    deadzone: float = 0.10          # |smoothed| below this is treated as 0
    step: float = 0.10              # Quantization step
    min_delta: float = 0.05         # Minimum change vs last sent to publish
    tick_interval_s: float = 0.08   # Conditioning / publish period T

    def validate(self):
        """Raise ValueError if any parameter is out of range."""
        if not 0.0 < self.alpha < 1.0:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")
        if self.deadzone < 0.0 or self.deadzone >= 1.0:
            raise ValueError(f"deadzone must be in [0, 1), got {self.deadzone}")
        if not 0.0 < self.step <= 1.0:
            raise ValueError(f"step must be in (0, 1], got {self.step}")
        if self.min_delta < 0.0:
            raise ValueError(f"min_delta must be >= 0, got {self.min_delta}")
        if self.tick_interval_s <= 0.0:
            raise ValueError(f"tick_interval_s must be > 0, got {self.tick_interval_s}")


def clamp_unit(value: float) -> float:
    """Clamp to [-1, 1]. Non-finite input maps to 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(-1.0, min(1.0, value))


def quantize(value: float, step: float = 0.10) -> float:
    """
    Round to the nearest multiple of `step`, ties away from zero.

    The result is clamped to [-1, 1] and is always itself a multiple of
    `step`. Symmetric: quantize(-x) == -quantize(x).

    Examples (step=0.10):
        quantize(0.17)  -> 0.2
        quantize(-0.14) -> -0.1
        quantize(0.15)  -> 0.2
    """
    magnitude = abs(clamp_unit(value))
    levels = math.floor(magnitude / step + 0.5 + _TIE_EPSILON)
    max_levels = math.floor(1.0 / step + _TIE_EPSILON)
    levels = min(levels, max_levels)

    if levels == 0:
        return 0.0

    result = round(levels * step, 10)
    return math.copysign(result, value)


@dataclass
class AxisState:
    """
    State of one control axis.

    Ownership:
        raw        - written by the sampler path only
        smoothed   - written by the tick (and release) path only
        last_sent  - written by the tick (and release) path only
    """
    raw: float = 0.0
    smoothed: float = 0.0
    last_sent: float = 0.0

    def reset(self):
        """Zero all fields."""
        self.raw = 0.0
        self.smoothed = 0.0
        self.last_sent = 0.0


class SignalConditioner:
    """
    Stateless conditioning rules applied to an AxisState.

    The only state touched is `AxisState.smoothed`, advanced one EMA step
    per call to `condition()`.
    """

    def __init__(self, config: ConditionerConfig):
        self.config = config

    def smooth(self, axis: AxisState) -> float:
        """Advance the EMA one step and return the new smoothed value."""
        raw = axis.raw
        axis.smoothed = clamp_unit(
            axis.smoothed + self.config.alpha * (raw - axis.smoothed)
        )
        return axis.smoothed

    def apply_deadzone(self, value: float) -> float:
        """Return 0 for values inside the deadzone, else the value unchanged."""
        if abs(value) < self.config.deadzone:
            return 0.0
        return value

    def condition(self, axis: AxisState) -> float:
        """
        Run one conditioning step.

        Returns:
            Quantized candidate value for transmission
        """
        smoothed = self.smooth(axis)
        return quantize(self.apply_deadzone(smoothed), self.config.step)

    def exceeds_delta(self, candidates, axes) -> bool:
        """
        True if any candidate differs from its axis' last sent value by at
        least min_delta.
        """
        delta = max(abs(c - a.last_sent) for c, a in zip(candidates, axes))
        # Quantized values carry float noise (0.30000000000000004)
        return delta + _TIE_EPSILON >= self.config.min_delta
