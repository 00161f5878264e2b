"""
Stick Profiles
==============

Synthetic joystick traces for simulation mode and tests.

A trace is a sequence of timestamped samples at a fixed sampler rate
(display-driven rates are typically 60-120Hz). Each sample is either an
active vector (screen convention, up = -dy) or a release.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple
import logging

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class StickTrace:
    """Sampled stick input."""
    t: np.ndarray        # Sample times (s), increasing
    dx: np.ndarray       # Horizontal component
    dy: np.ndarray       # Vertical component (screen convention)
    active: np.ndarray   # False = pointer released

    @property
    def duration(self) -> float:
        return float(self.t[-1]) if len(self.t) else 0.0

    def __len__(self) -> int:
        return len(self.t)

    def samples(self) -> Iterator[Tuple[float, Optional[Tuple[float, float]]]]:
        """
        Iterate (time, vector) pairs; vector is None for released samples.
        """
        for t, dx, dy, active in zip(self.t, self.dx, self.dy, self.active):
            yield float(t), ((float(dx), float(dy)) if active else None)

    def then(self, other: 'StickTrace') -> 'StickTrace':
        """Concatenate `other` after this trace."""
        if len(self) == 0:
            return other
        dt = float(self.t[1] - self.t[0]) if len(self) > 1 else 0.0
        offset = self.t[-1] + dt
        return StickTrace(
            t=np.concatenate([self.t, other.t + offset]),
            dx=np.concatenate([self.dx, other.dx]),
            dy=np.concatenate([self.dy, other.dy]),
            active=np.concatenate([self.active, other.active]),
        )


def _timebase(duration_s: float, rate_hz: float) -> np.ndarray:
    n = max(1, int(round(duration_s * rate_hz)))
    return np.arange(n) / rate_hz


def hold(dx: float, dy: float, duration_s: float, rate_hz: float = 60.0) -> StickTrace:
    """Stick held at a fixed position."""
    t = _timebase(duration_s, rate_hz)
    return StickTrace(t, np.full_like(t, dx), np.full_like(t, dy), np.ones_like(t, dtype=bool))


def released(duration_s: float, rate_hz: float = 60.0) -> StickTrace:
    """No pointer contact."""
    t = _timebase(duration_s, rate_hz)
    return StickTrace(t, np.zeros_like(t), np.zeros_like(t), np.zeros_like(t, dtype=bool))


def noisy_hold(dx: float, dy: float, duration_s: float, noise_std: float = 0.05,
               rate_hz: float = 60.0, seed: Optional[int] = None) -> StickTrace:
    """Held position with Gaussian hand tremor, clipped to the unit square."""
    rng = np.random.default_rng(seed)
    trace = hold(dx, dy, duration_s, rate_hz)
    n = len(trace)
    trace.dx = np.clip(trace.dx + rng.normal(0.0, noise_std, n), -1.0, 1.0)
    trace.dy = np.clip(trace.dy + rng.normal(0.0, noise_std, n), -1.0, 1.0)
    return trace


def circle(radius: float, period_s: float, duration_s: float,
           rate_hz: float = 60.0) -> StickTrace:
    """Knob moved around a circle (continuous steering sweep)."""
    t = _timebase(duration_s, rate_hz)
    phase = 2 * np.pi * t / period_s
    return StickTrace(
        t,
        radius * np.cos(phase),
        -radius * np.sin(phase),
        np.ones_like(t, dtype=bool),
    )


def flick(duration_s: float = 0.3, rate_hz: float = 60.0) -> StickTrace:
    """Fast full-throttle flick followed by release."""
    return hold(0.0, -1.0, duration_s, rate_hz).then(released(duration_s, rate_hz))


class ProfileType(Enum):
    """Predefined profiles."""
    FORWARD_HOLD = "forward_hold"
    TREMOR = "tremor"
    SWEEP = "sweep"
    FLICK = "flick"
    DRIVE_AND_STOP = "drive_and_stop"


def get_profile(profile_type: ProfileType, rate_hz: float = 60.0,
                seed: Optional[int] = None) -> StickTrace:
    """
    Build a predefined profile.

    Args:
        profile_type: Which profile
        rate_hz: Sampler rate
        seed: RNG seed for noisy profiles
    """
    if profile_type == ProfileType.FORWARD_HOLD:
        return hold(0.0, -1.0, 2.0, rate_hz).then(released(0.5, rate_hz))
    if profile_type == ProfileType.TREMOR:
        return noisy_hold(0.0, -0.05, 3.0, 0.03, rate_hz, seed).then(released(0.5, rate_hz))
    if profile_type == ProfileType.SWEEP:
        return circle(0.8, 2.0, 4.0, rate_hz).then(released(0.5, rate_hz))
    if profile_type == ProfileType.FLICK:
        return flick(rate_hz=rate_hz)
    if profile_type == ProfileType.DRIVE_AND_STOP:
        segments: List[StickTrace] = [
            hold(0.0, -0.6, 1.5, rate_hz),
            noisy_hold(0.5, -0.6, 1.5, 0.05, rate_hz, seed),
            released(1.0, rate_hz),
            hold(0.0, 0.8, 1.0, rate_hz),
            released(0.5, rate_hz),
        ]
        trace = segments[0]
        for segment in segments[1:]:
            trace = trace.then(segment)
        return trace
    raise ValueError(f"Unknown profile: {profile_type}")
