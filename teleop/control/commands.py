"""
Command Wire Format
===================

Immutable command values sent to the vehicle and their payload encoding.

Payloads:
    Digital variant - a single ASCII token:
        W     forward
        A     left
        S     backward
        D     right
        R     reverse
        STOP  stop

    Analog variant - compact JSON with two named fields:
        {"throttle":0.3,"steer":-0.1}

        Each value is rounded to two decimals and lies in [-1.00, 1.00].
        Field order is not significant; consumers parse by name.
"""

import json
import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Union


class QoS(IntEnum):
    """MQTT delivery guarantee used for a publish."""
    AT_MOST_ONCE = 0     # Steady-state updates, staleness self-corrects
    AT_LEAST_ONCE = 1    # Every stop / safety command


class DigitalCommand(Enum):
    """Discrete drive symbols of the digital variant."""
    FORWARD = "W"
    LEFT = "A"
    BACK = "S"
    RIGHT = "D"
    REVERSE = "R"
    STOP = "STOP"

    def to_payload(self) -> str:
        return self.value

    @property
    def is_stop(self) -> bool:
        return self is DigitalCommand.STOP


def _wire_value(value: float) -> float:
    """Clamp to [-1, 1] and round to two decimals (no negative zero)."""
    if not math.isfinite(value):
        value = 0.0
    value = max(-1.0, min(1.0, value))
    return round(value, 2) + 0.0


@dataclass(frozen=True)
class AnalogCommand:
    """Throttle/steer pair of the analog variant."""
    throttle: float = 0.0
    steer: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "throttle", _wire_value(self.throttle))
        object.__setattr__(self, "steer", _wire_value(self.steer))

    @classmethod
    def stop(cls) -> 'AnalogCommand':
        """Zero command."""
        return cls(0.0, 0.0)

    @property
    def is_stop(self) -> bool:
        return self.throttle == 0.0 and self.steer == 0.0

    def to_payload(self) -> str:
        return json.dumps(
            {"throttle": self.throttle, "steer": self.steer},
            separators=(",", ":")
        )


Command = Union[AnalogCommand, DigitalCommand]


def parse_payload(payload: Union[bytes, str]) -> Command:
    """
    Decode a payload received on the control topic.

    Args:
        payload: Raw message payload

    Returns:
        DigitalCommand for a bare token, AnalogCommand for a JSON record

    Raises:
        ValueError: If the payload is neither a known token nor a valid
            analog record
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("ascii")
        except UnicodeDecodeError as e:
            raise ValueError(f"Payload is not ASCII: {e}") from e

    text = payload.strip()

    for command in DigitalCommand:
        if text == command.value:
            return command

    try:
        record = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Unknown command payload: {text!r}") from e

    if not isinstance(record, dict):
        raise ValueError(f"Analog payload must be an object: {text!r}")

    try:
        throttle = float(record["throttle"])
        steer = float(record["steer"])
    except KeyError as e:
        raise ValueError(f"Analog payload missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise ValueError(f"Analog payload has non-numeric field: {e}") from e

    if abs(throttle) > 1.0 or abs(steer) > 1.0:
        raise ValueError(f"Analog payload out of range: {text!r}")

    return AnalogCommand(throttle=throttle, steer=steer)
