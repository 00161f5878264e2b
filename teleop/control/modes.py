"""
Command variant selection.
"""

from enum import Enum
from typing import Optional

from .conditioning import ConditionerConfig
from .digital import DigitalPipeline
from .pipeline import BasePipeline, ConditioningPipeline
from .safety_stop import SafetyStopConfig
from .scheduler import Scheduler
from ..link.session import LinkSession


class CommandMode(Enum):
    """Wire variant published on the control topic."""
    ANALOG = "analog"      # {"throttle":..,"steer":..}
    DIGITAL = "digital"    # W/A/S/D/R/STOP


def create_pipeline(mode: CommandMode, link: LinkSession,
                    config: Optional[ConditionerConfig] = None,
                    safety_config: Optional[SafetyStopConfig] = None,
                    scheduler: Optional[Scheduler] = None) -> BasePipeline:
    """Build the pipeline for a command mode."""
    if mode == CommandMode.ANALOG:
        return ConditioningPipeline(link, config, safety_config, scheduler)
    if mode == CommandMode.DIGITAL:
        return DigitalPipeline(link, config, safety_config, scheduler)
    raise ValueError(f"Unknown command mode: {mode}")
