"""
Unit tests for the stick sampler.
"""

import math
from unittest.mock import Mock

import pytest

from teleop.control.sampler import StickSampler


@pytest.fixture
def listener():
    return Mock()


@pytest.fixture
def sampler(listener):
    return StickSampler(listener, size=100.0)


class TestStickSampler:
    """Tests for pointer normalization."""

    def test_travel_radius(self, sampler):
        assert sampler.travel_radius == pytest.approx(42.0)

    def test_centre_is_zero(self, sampler):
        assert sampler.normalize(50.0, 50.0) == (0.0, 0.0)

    def test_edge_of_travel_is_unit(self, sampler):
        dx, dy = sampler.normalize(50.0, 8.0)

        assert dx == pytest.approx(0.0)
        assert dy == pytest.approx(-1.0)

    def test_beyond_travel_clamped_to_circle(self, sampler):
        dx, dy = sampler.normalize(100.0, 100.0)

        assert math.hypot(dx, dy) == pytest.approx(1.0)
        assert dx == pytest.approx(dy)

    def test_pan_notifies_listener(self, sampler, listener):
        vector = sampler.pan(71.0, 50.0)

        listener.on_active.assert_called_once_with(vector)
        assert vector[0] == pytest.approx(0.5)
        assert sampler.active

    def test_end_notifies_release(self, sampler, listener):
        sampler.pan(60.0, 60.0)
        sampler.end()

        listener.on_released.assert_called_once()
        assert not sampler.active
        assert sampler.vector == (0.0, 0.0)

    def test_invalid_size(self, listener):
        with pytest.raises(ValueError):
            StickSampler(listener, size=0.0)

    def test_drives_pipeline(self, pipeline):
        sampler = StickSampler(pipeline, size=100.0)
        sampler.pan(50.0, 8.0)

        assert pipeline.throttle.raw == pytest.approx(1.0)
        sampler.end()
        assert not pipeline.dragging
