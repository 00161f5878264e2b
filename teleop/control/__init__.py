"""
Control Path Modules
====================

Input-to-command conditioning and transmission.

Components:
    - ConditioningPipeline: analog throttle/steer pipeline
    - DigitalPipeline: W/A/S/D/STOP symbol pipeline
    - SignalConditioner: EMA, deadzone and quantization rules
    - SafetyStopController: stop-on-release with redundancy burst
    - StickSampler: pointer position to normalized stick vector
    - Ticker / ThreadingScheduler / ManualScheduler: timers
"""

from .commands import (
    QoS,
    AnalogCommand,
    DigitalCommand,
    parse_payload,
)

from .conditioning import (
    AxisState,
    ConditionerConfig,
    SignalConditioner,
    clamp_unit,
    quantize,
)

from .scheduler import (
    Scheduler,
    ThreadingScheduler,
    ManualScheduler,
    Ticker,
)

from .safety_stop import (
    SafetyStopConfig,
    SafetyStopController,
)

from .pipeline import (
    BasePipeline,
    ConditioningPipeline,
)

from .digital import (
    DigitalPipeline,
    vector_to_command,
)

from .modes import CommandMode, create_pipeline

from .sampler import StickSampler

from .readout import (
    StatusSnapshot,
    direction_text,
    snapshot,
)

__all__ = [
    'QoS',
    'AnalogCommand',
    'DigitalCommand',
    'parse_payload',
    'AxisState',
    'ConditionerConfig',
    'SignalConditioner',
    'clamp_unit',
    'quantize',
    'Scheduler',
    'ThreadingScheduler',
    'ManualScheduler',
    'Ticker',
    'SafetyStopConfig',
    'SafetyStopController',
    'BasePipeline',
    'ConditioningPipeline',
    'DigitalPipeline',
    'vector_to_command',
    'CommandMode',
    'create_pipeline',
    'StickSampler',
    'StatusSnapshot',
    'direction_text',
    'snapshot',
]
