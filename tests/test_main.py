"""
Tests for the teleop client application and its configuration.
"""

import json
import time
from unittest.mock import Mock

import pytest

from teleop.control.commands import QoS
from teleop.control.digital import DigitalPipeline
from teleop.control.scheduler import ManualScheduler
from teleop.link.session import MockLinkSession
from teleop.main import TeleopApp, TeleopConfig

from conftest import TICK


@pytest.fixture
def sim_app(scheduler):
    """Simulation app on the manual clock, ticked by hand."""
    config = TeleopConfig(simulation=True)
    link = MockLinkSession(config.link, clock=scheduler.now)
    app = TeleopApp(config, link=link, scheduler=scheduler)
    app.start(start_ticker=False)
    yield app
    app.stop()


class TestTeleopConfig:
    """Tests for TeleopConfig."""

    def test_defaults(self):
        config = TeleopConfig()

        assert config.mode == "analog"
        assert config.conditioner.tick_interval_s == 0.08
        assert config.safety.burst_count == 3
        assert config.link.topic == "Car/Control"

    def test_dict_roundtrip(self):
        config = TeleopConfig(mode="digital", simulation=True)
        config.link.host = "localhost"

        restored = TeleopConfig.from_dict(config.to_dict())

        assert restored == config

    def test_from_json(self, tmp_path):
        path = tmp_path / "teleop.json"
        path.write_text(json.dumps({
            "mode": "digital",
            "conditioner": {"alpha": 0.5},
            "link": {"host": "broker.local", "port": 1884},
        }))

        config = TeleopConfig.from_json(str(path))

        assert config.mode == "digital"
        assert config.conditioner.alpha == 0.5
        assert config.conditioner.step == 0.10
        assert config.link.port == 1884

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            TeleopConfig.from_dict({"conditioner": {"gain": 2.0}})


class TestTeleopApp:
    """Tests for TeleopApp."""

    def test_invalid_config_rejected(self):
        config = TeleopConfig(simulation=True)
        config.conditioner.alpha = 1.5

        with pytest.raises(ValueError):
            TeleopApp(config)

    def test_invalid_mode_rejected(self):
        with pytest.raises(ValueError):
            TeleopApp(TeleopConfig(mode="joystick", simulation=True))

    def test_simulation_uses_mock_link(self):
        app = TeleopApp(TeleopConfig(simulation=True))

        assert isinstance(app.link, MockLinkSession)

    def test_start_connects(self, sim_app):
        assert sim_app.running
        assert sim_app.status.connected

    def test_drive_and_release(self, sim_app, scheduler):
        sim_app.on_active((0.0, -1.0))
        for _ in range(3):
            scheduler.advance(TICK)
            sim_app.tick()
        sim_app.on_released()

        payloads = [m.payload for m in sim_app.link.messages]
        assert payloads[-1] == '{"throttle":0.0,"steer":0.0}'
        assert sim_app.status.dragging is False
        assert sim_app.status.pending_stops == 2

    def test_status_listener(self, sim_app, scheduler):
        listener = Mock()
        sim_app.add_status_listener(listener)
        sim_app.tick()

        listener.assert_called_once()
        assert listener.call_args[0][0].connected

    def test_failed_connect_not_fatal(self, scheduler):
        config = TeleopConfig(simulation=True)
        app = TeleopApp(config, link=MockLinkSession(config.link, fail_connect=True),
                        scheduler=scheduler)

        assert app.start(start_ticker=False) is True
        app.on_active((0.0, -1.0))
        app.tick()

        assert app.link.messages == []
        assert app.status.link_status.startswith("Connection failed")
        app.stop()

    def test_reverse_requires_digital_mode(self, sim_app):
        assert sim_app.reverse() is False
        assert sim_app.link.messages == []

    def test_reverse_in_digital_mode(self, scheduler):
        config = TeleopConfig(mode="digital", simulation=True)
        app = TeleopApp(config, scheduler=scheduler)
        app.start(start_ticker=False)

        assert isinstance(app.pipeline, DigitalPipeline)
        assert app.reverse() is True
        assert app.link.messages[-1].payload == "R"
        app.stop()

    def test_disconnect_stops_vehicle_first(self, sim_app, scheduler):
        sim_app.on_active((0.0, -1.0))
        scheduler.advance(TICK)
        sim_app.tick()

        sim_app.disconnect()

        last = sim_app.link.messages[-1]
        assert last.payload == '{"throttle":0.0,"steer":0.0}'
        assert last.qos == QoS.AT_LEAST_ONCE
        assert not sim_app.status.connected

    def test_reconnect(self, sim_app):
        sim_app.link.drop_connection()

        assert sim_app.reconnect() is True
        assert sim_app.status.connected

    def test_stop_flushes_final_stop(self, sim_app, scheduler):
        sim_app.on_active((0.0, -1.0))
        scheduler.advance(TICK)
        sim_app.tick()

        sim_app.stop()

        assert sim_app.link.messages[-1].payload == '{"throttle":0.0,"steer":0.0}'
        assert not sim_app.running
        assert not sim_app.link.connected

    def test_burst_spacing_follows_tick_interval(self, scheduler):
        """Stops after a release are one configured tick apart."""
        config = TeleopConfig.from_dict({
            "simulation": True,
            "conditioner": {"tick_interval_s": 0.2},
        })
        link = MockLinkSession(config.link, clock=scheduler.now)
        app = TeleopApp(config, link=link, scheduler=scheduler)
        app.start(start_ticker=False)

        assert app.pipeline.safety_stop.config.burst_interval_s == 0.2

        app.on_active((0.0, -1.0))
        scheduler.advance(0.2)
        app.tick()
        app.on_released()
        scheduler.advance(1.0)

        stops = [m.timestamp for m in link.messages if m.qos == QoS.AT_LEAST_ONCE]
        assert stops == [pytest.approx(0.2), pytest.approx(0.4), pytest.approx(0.6)]
        app.stop()

    def test_explicit_burst_interval_kept(self, scheduler):
        config = TeleopConfig.from_dict({
            "simulation": True,
            "conditioner": {"tick_interval_s": 0.2},
            "safety": {"burst_interval_s": 0.05},
        })
        app = TeleopApp(config, scheduler=scheduler)

        assert app.pipeline.safety_stop.config.burst_interval_s == 0.05

    def test_real_ticker(self):
        """Smoke test with the threaded ticker and timers."""
        config = TeleopConfig(simulation=True)
        config.conditioner.tick_interval_s = 0.02
        app = TeleopApp(config)
        app.start()
        app.on_active((0.0, -1.0))
        time.sleep(0.3)
        app.on_released()
        time.sleep(0.1)
        app.stop()

        stops = [m for m in app.link.messages if m.qos == QoS.AT_LEAST_ONCE]
        assert len(app.link.messages) > len(stops) >= 1
        assert app.link.messages[0].payload.startswith('{"throttle":0.4')
