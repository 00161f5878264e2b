"""
Shared test fixtures for teleop unit tests.
"""

import pytest

from teleop.control.conditioning import ConditionerConfig
from teleop.control.digital import DigitalPipeline
from teleop.control.pipeline import ConditioningPipeline
from teleop.control.scheduler import ManualScheduler
from teleop.link.session import LinkConfig, MockLinkSession


TICK = 0.08


@pytest.fixture
def scheduler():
    """Manual clock starting at t=0."""
    return ManualScheduler()


@pytest.fixture
def link_config():
    """Default broker configuration."""
    return LinkConfig()


@pytest.fixture
def link(scheduler, link_config):
    """Connected in-memory link stamped with the manual clock."""
    session = MockLinkSession(link_config, clock=scheduler.now)
    session.connect()
    return session


@pytest.fixture
def conditioner_config():
    """Default conditioning configuration."""
    return ConditionerConfig()


@pytest.fixture
def pipeline(link, conditioner_config, scheduler):
    """Analog pipeline on the manual clock."""
    return ConditioningPipeline(link, conditioner_config, scheduler=scheduler)


@pytest.fixture
def digital_pipeline(link, conditioner_config, scheduler):
    """Digital pipeline on the manual clock."""
    return DigitalPipeline(link, conditioner_config, scheduler=scheduler)


def run_ticks(pipeline, scheduler, count: int, interval: float = TICK):
    """Advance the clock one interval at a time, ticking after each step."""
    for _ in range(count):
        scheduler.advance(interval)
        pipeline.tick()
