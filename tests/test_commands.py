"""
Unit tests for command values and payload encoding.
"""

import dataclasses
import json

import pytest

from teleop.control.commands import (
    AnalogCommand, DigitalCommand, QoS, parse_payload
)


class TestQoS:
    """Tests for QoS levels."""

    def test_levels(self):
        assert QoS.AT_MOST_ONCE == 0
        assert QoS.AT_LEAST_ONCE == 1


class TestDigitalCommand:
    """Tests for DigitalCommand tokens."""

    def test_tokens(self):
        """Tokens match what the vehicle expects."""
        assert DigitalCommand.FORWARD.to_payload() == "W"
        assert DigitalCommand.LEFT.to_payload() == "A"
        assert DigitalCommand.BACK.to_payload() == "S"
        assert DigitalCommand.RIGHT.to_payload() == "D"
        assert DigitalCommand.REVERSE.to_payload() == "R"
        assert DigitalCommand.STOP.to_payload() == "STOP"

    def test_only_stop_is_stop(self):
        assert DigitalCommand.STOP.is_stop
        assert not any(c.is_stop for c in DigitalCommand if c is not DigitalCommand.STOP)


class TestAnalogCommand:
    """Tests for AnalogCommand."""

    def test_payload_is_compact_json(self):
        command = AnalogCommand(throttle=0.3, steer=-0.1)

        assert command.to_payload() == '{"throttle":0.3,"steer":-0.1}'

    def test_values_rounded_to_two_decimals(self):
        """Quantization float noise never reaches the wire."""
        command = AnalogCommand(throttle=0.30000000000000004, steer=0.123456)

        assert command.throttle == 0.3
        assert command.steer == 0.12

    def test_values_clamped(self):
        command = AnalogCommand(throttle=1.7, steer=-2.0)

        assert command.throttle == 1.0
        assert command.steer == -1.0

    def test_no_negative_zero_on_wire(self):
        command = AnalogCommand(throttle=-0.0, steer=-0.001)

        assert command.to_payload() == '{"throttle":0.0,"steer":0.0}'
        assert command.is_stop

    def test_stop(self):
        stop = AnalogCommand.stop()

        assert stop.is_stop
        assert json.loads(stop.to_payload()) == {"throttle": 0.0, "steer": 0.0}

    def test_immutable(self):
        command = AnalogCommand(0.5, 0.5)

        with pytest.raises(dataclasses.FrozenInstanceError):
            command.throttle = 0.0

    def test_equality_by_value(self):
        assert AnalogCommand(0.5, -0.2) == AnalogCommand(0.5, -0.2)


class TestParsePayload:
    """Tests for parse_payload."""

    def test_digital_tokens(self):
        for command in DigitalCommand:
            assert parse_payload(command.to_payload()) is command

    def test_bytes_payload(self):
        assert parse_payload(b"STOP") is DigitalCommand.STOP

    def test_analog_record(self):
        command = parse_payload('{"throttle":0.4,"steer":-0.6}')

        assert command == AnalogCommand(0.4, -0.6)

    def test_analog_field_order_not_significant(self):
        command = parse_payload(b'{"steer": 0.5, "throttle": -0.2}')

        assert command.throttle == -0.2
        assert command.steer == 0.5

    @pytest.mark.parametrize("payload", [
        "X",
        "",
        "[0.1, 0.2]",
        '{"throttle": 0.1}',
        '{"throttle": "fast", "steer": 0}',
        '{"throttle": 2.0, "steer": 0}',
        b"\xff\xfe",
    ])
    def test_invalid_payloads(self, payload):
        with pytest.raises(ValueError):
            parse_payload(payload)
