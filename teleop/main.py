"""
Teleoperation Client
====================

Main entry point wiring the broker link, the conditioning pipeline and the
periodic tick.

Input arrives from an external sampler (the web stick adapter, or a
synthetic profile in simulation mode) through on_active / on_released.
"""

import argparse
import json
import signal
import sys
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional, Tuple
import logging

from .control.conditioning import ConditionerConfig
from .control.modes import CommandMode, create_pipeline
from .control.pipeline import BasePipeline
from .control.digital import DigitalPipeline
from .control.readout import StatusSnapshot, snapshot
from .control.safety_stop import SafetyStopConfig
from .control.scheduler import Scheduler, ThreadingScheduler, Ticker
from .link.session import LinkConfig, LinkSession, MockLinkSession
from .simulation.stick_profiles import ProfileType, get_profile

logger = logging.getLogger(__name__)


@dataclass
class TeleopConfig:
    """Main client configuration."""
    mode: str = CommandMode.ANALOG.value
    conditioner: ConditionerConfig = field(default_factory=ConditionerConfig)
    safety: SafetyStopConfig = field(default_factory=SafetyStopConfig)
    link: LinkConfig = field(default_factory=LinkConfig)

    # Simulation
    simulation: bool = False
    profile: str = ProfileType.DRIVE_AND_STOP.value
    sampler_rate_hz: float = 60.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'TeleopConfig':
        data = dict(data)
        return cls(
            conditioner=ConditionerConfig(**data.pop("conditioner", {})),
            safety=SafetyStopConfig(**data.pop("safety", {})),
            link=LinkConfig(**data.pop("link", {})),
            **data,
        )

    @classmethod
    def from_json(cls, filepath: str) -> 'TeleopConfig':
        """Load configuration from a JSON file."""
        with open(filepath) as f:
            data = json.load(f)
        return cls.from_dict(data)

    @property
    def command_mode(self) -> CommandMode:
        return CommandMode(self.mode)


class TeleopApp:
    """
    Teleoperation client.

    Coordinates:
    - Broker link session
    - Conditioning pipeline (analog or digital)
    - Periodic tick
    - Status snapshots for display
    """

    def __init__(self, config: Optional[TeleopConfig] = None,
                 link: Optional[LinkSession] = None,
                 scheduler: Optional[Scheduler] = None):
        self.config = config or TeleopConfig()
        self.config.conditioner.validate()
        self.config.safety.validate()

        if link is None:
            link = MockLinkSession(self.config.link) if self.config.simulation \
                else LinkSession(self.config.link)
        self.link = link
        self.link.add_disconnect_callback(self._on_link_lost)

        self.pipeline: BasePipeline = create_pipeline(
            self.config.command_mode, self.link,
            self.config.conditioner, self.config.safety,
            scheduler or ThreadingScheduler(),
        )
        self._ticker: Optional[Ticker] = None
        self._status = StatusSnapshot()
        self._status_listeners: List[Callable[[StatusSnapshot], None]] = []
        self._running = False
        self._stopped = threading.Event()

    def start(self, start_ticker: bool = True) -> bool:
        """
        Connect the link and start the tick.

        A failed connection is not fatal: the pipeline stays idle and every
        publish is dropped until reconnect() succeeds.
        """
        logger.info(f"Starting teleop client ({self.config.mode} mode, "
                    f"topic {self.pipeline.topic})")

        if not self.link.connect():
            logger.warning(f"Link not available: {self.link.status}")

        if start_ticker:
            self._ticker = Ticker(self.config.conditioner.tick_interval_s,
                                  self.tick, name="teleop-tick")
            self._ticker.start()

        self._running = True
        self._stopped.clear()
        self._update_status()
        return True

    def stop(self):
        """Flush a final stop, cancel the tick and close the link."""
        if not self._running:
            return
        logger.info("Stopping teleop client...")
        self._running = False

        sent = self.pipeline.shutdown()
        if self._ticker:
            self._ticker.stop()
            self._ticker = None
        self.link.disconnect()
        self._stopped.set()
        logger.info(f"Teleop client stopped ({sent} final stop commands)")

    def tick(self):
        """One conditioning/publish step, then refresh the status snapshot."""
        self.pipeline.tick()
        self._update_status()

    # ------------------------------------------------------------------
    # Sampler and buttons
    # ------------------------------------------------------------------

    def on_active(self, vector: Tuple[float, float]):
        self.pipeline.on_active(vector)

    def on_released(self):
        self.pipeline.on_released()
        self._update_status()

    def emergency_stop(self):
        """STOP button."""
        self.pipeline.stop()
        self._update_status()

    def reverse(self) -> bool:
        """R button (digital mode only)."""
        if not isinstance(self.pipeline, DigitalPipeline):
            logger.warning("Reverse is only available in digital mode")
            return False
        sent = self.pipeline.reverse()
        self._update_status()
        return sent

    def reconnect(self) -> bool:
        """Reconnect button."""
        ok = self.link.reconnect()
        self._update_status()
        return ok

    def disconnect(self):
        """Disconnect button. Stops the vehicle first while still connected."""
        self.pipeline.stop()
        self.link.disconnect()
        self._update_status()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def add_status_listener(self, listener: Callable[[StatusSnapshot], None]):
        self._status_listeners.append(listener)

    def _on_link_lost(self):
        if self._running:
            logger.warning("Link lost, commands will be dropped until reconnect")
        self._update_status()

    def _update_status(self):
        self._status = snapshot(self.pipeline)
        for listener in self._status_listeners:
            try:
                listener(self._status)
            except Exception as e:
                logger.warning(f"Status listener error: {e}")

    @property
    def status(self) -> StatusSnapshot:
        """Latest status snapshot."""
        return self._status

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Run loops
    # ------------------------------------------------------------------

    def run(self):
        """Block until stop(); input comes from an external sampler."""
        while self._running and not self._stopped.wait(0.5):
            pass

    def run_profile(self, profile: ProfileType):
        """Feed a synthetic stick profile in real time."""
        trace = get_profile(profile, rate_hz=self.config.sampler_rate_hz)
        logger.info(f"Replaying profile '{profile.value}' ({trace.duration:.1f}s)")

        start = time.monotonic()
        was_active = False
        for t, vector in trace.samples():
            if not self._running:
                break
            delay = start + t - time.monotonic()
            if delay > 0:
                time.sleep(delay)
            if vector is not None:
                self.on_active(vector)
                was_active = True
            elif was_active:
                self.on_released()
                was_active = False

        if was_active:
            self.on_released()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Joystick teleoperation client")
    parser.add_argument("--config", "-c", help="JSON configuration file")
    parser.add_argument("--mode", choices=[m.value for m in CommandMode],
                        help="Command variant (default: analog)")
    parser.add_argument("--host", help="MQTT broker host")
    parser.add_argument("--port", type=int, help="MQTT broker port")
    parser.add_argument("--client-id", help="MQTT client identifier")
    parser.add_argument("--topic", help="Control topic")
    parser.add_argument("--tick-ms", type=float, help="Tick interval in milliseconds")
    parser.add_argument("--simulation", "-s", action="store_true",
                        help="Use an in-memory link and a synthetic stick profile")
    parser.add_argument("--profile", choices=[p.value for p in ProfileType],
                        help="Stick profile for simulation mode")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose logging")

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Create config
    config = TeleopConfig.from_json(args.config) if args.config else TeleopConfig()
    if args.mode:
        config.mode = args.mode
    if args.host:
        config.link.host = args.host
    if args.port:
        config.link.port = args.port
    if args.client_id:
        config.link.client_id = args.client_id
    if args.topic:
        config.link.topic = args.topic
    if args.tick_ms:
        config.conditioner.tick_interval_s = args.tick_ms / 1000.0
    if args.simulation:
        config.simulation = True
    if args.profile:
        config.profile = args.profile

    try:
        app = TeleopApp(config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    # Signal handler for graceful shutdown
    def signal_handler(sig, frame):
        logger.info("Shutdown signal received")
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    app.start()
    if config.simulation:
        app.run_profile(ProfileType(config.profile))
        # Let the stop burst complete before shutting down
        burst = app.pipeline.safety_stop.config
        time.sleep(burst.burst_count * burst.burst_interval_s)
        for message in app.link.messages:
            logger.info(f"{message.timestamp:.3f} qos={message.qos} {message.payload}")
        app.stop()
    else:
        logger.info("Teleop client running. Press Ctrl+C to stop.")
        app.run()


if __name__ == "__main__":
    main()
