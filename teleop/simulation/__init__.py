"""
Simulation Module
=================

Synthetic stick input and offline replay of the control path.
"""

from .stick_profiles import (
    StickTrace,
    ProfileType,
    get_profile,
    hold,
    released,
    noisy_hold,
    circle,
    flick,
)
from .replay import ReplayResult, replay

__all__ = [
    'StickTrace', 'ProfileType', 'get_profile',
    'hold', 'released', 'noisy_hold', 'circle', 'flick',
    'ReplayResult', 'replay',
]
