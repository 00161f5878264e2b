"""
Unit tests for the status readout.
"""

import pytest

from teleop.control.readout import (
    NO_DIRECTION, direction_text, snapshot, stick_power
)

from conftest import run_ticks


class TestDirectionText:
    """Tests for direction_text."""

    @pytest.mark.parametrize("vector,expected", [
        ((0.0, -1.0), "up  100%"),
        ((0.0, 0.5), "down  50%"),
        ((-0.3, 0.0), "left  30%"),
        ((1.0, 0.0), "right  100%"),
        ((0.5, -0.6), "up  78%"),
    ])
    def test_directions(self, vector, expected):
        assert direction_text(vector) == expected

    def test_weak_input_has_no_direction(self):
        assert direction_text((0.1, 0.05)) == NO_DIRECTION
        assert direction_text((0.0, 0.0)) == NO_DIRECTION

    def test_power_clamped(self):
        assert stick_power((1.0, 1.0)) == 1.0


class TestSnapshot:
    """Tests for pipeline snapshots."""

    def test_idle(self, pipeline):
        status = snapshot(pipeline)

        assert status.connected is True
        assert status.dragging is False
        assert status.direction == NO_DIRECTION
        assert status.last_payload is None
        assert status.throttle == 0.0
        assert status.topic == "Car/Control"

    def test_after_publish(self, pipeline, scheduler):
        pipeline.on_active((0.0, -1.0))
        run_ticks(pipeline, scheduler, 1)

        status = snapshot(pipeline)
        assert status.dragging is True
        assert status.direction == "up  100%"
        assert status.last_payload == '{"throttle":0.4,"steer":0.0}'
        assert status.throttle == 0.4
        assert status.link_status == 'Sent command: {"throttle":0.4,"steer":0.0}'

    def test_pending_stops_after_release(self, pipeline, scheduler):
        pipeline.on_active((0.0, -1.0))
        run_ticks(pipeline, scheduler, 1)
        pipeline.on_released()

        assert snapshot(pipeline).pending_stops == 2

    def test_digital_has_no_axes(self, digital_pipeline, scheduler):
        digital_pipeline.on_active((0.9, 0.0))
        run_ticks(digital_pipeline, scheduler, 1)

        status = snapshot(digital_pipeline)
        assert status.throttle is None
        assert status.last_payload == "D"

    def test_to_dict(self, pipeline):
        data = snapshot(pipeline).to_dict()

        assert set(data) >= {"connected", "direction", "last_payload", "pending_stops"}
