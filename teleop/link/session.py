"""
MQTT Link Session
=================

Connection lifecycle to the publish/subscribe broker.

State machine:
    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED (loop)
    CONNECTED -> DISCONNECTED on any transport-detected disconnection

The control path only sees:
    connected                     - read before every publish
    publish(topic, payload, qos)  - drops silently when not connected
    add_disconnect_callback(cb)   - status display only

Motion commands are never queued or retried: a stale motion command
delivered late is worse than a dropped one. paho's network loop runs on its
own thread (loop_start), so publish() only enqueues and never waits for an
acknowledgment.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, List, Optional, Union
import logging

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)


class LinkState(Enum):
    """Connection states."""
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()


@dataclass
class LinkConfig:
    """Broker connection parameters."""
    host: str = "mqttgo.io"
    port: int = 1883
    client_id: str = "teleop_car_client"
    keepalive_s: int = 20
    topic: str = "Car/Control"
    connect_timeout_s: float = 5.0


@dataclass
class PublishedMessage:
    """Record of one issued publish."""
    timestamp: float
    topic: str
    payload: str
    qos: int


def _default_client_factory(config: LinkConfig) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=config.client_id,
        clean_session=True,
    )


class LinkSession:
    """
    paho-mqtt backed session for a single client on a single topic.

    Args:
        config: Broker parameters
        client_factory: Builds the paho client (replaced in tests)
    """

    def __init__(self, config: Optional[LinkConfig] = None,
                 client_factory: Optional[Callable[[LinkConfig], mqtt.Client]] = None):
        self.config = config or LinkConfig()
        self._client_factory = client_factory or _default_client_factory
        self._client: Optional[mqtt.Client] = None
        self._state = LinkState.DISCONNECTED
        self._status = "Not connected"
        self._connack = threading.Event()
        self._connect_error = ""
        self._disconnect_callbacks: List[Callable[[], None]] = []

        # Statistics
        self._published = 0
        self._dropped = 0
        self._disconnects = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        """
        Connect to the broker and start the network loop.

        Failure is non-fatal: the session stays DISCONNECTED and the status
        text carries the reason.

        Returns:
            True if connected
        """
        if self._state == LinkState.CONNECTED:
            return True

        # A client left over from a transport loss still runs its network
        # loop and would auto-reconnect with the same client id
        if self._client is not None:
            self._teardown()

        self._state = LinkState.CONNECTING
        self._status = "Connecting..."
        self._connack.clear()
        self._connect_error = ""

        try:
            self._client = self._client_factory(self.config)
            self._client.on_connect = self._on_connect
            self._client.on_disconnect = self._on_disconnect
            self._client.connect(self.config.host, self.config.port,
                                 keepalive=self.config.keepalive_s)
            self._client.loop_start()

            if not self._connack.wait(self.config.connect_timeout_s):
                raise TimeoutError(
                    f"no CONNACK within {self.config.connect_timeout_s:.1f}s"
                )
            if self._state != LinkState.CONNECTED:
                raise ConnectionError(self._connect_error or "connection refused")

        except Exception as e:
            logger.error(f"Failed to connect to {self.config.host}:{self.config.port}: {e}")
            self._teardown()
            self._state = LinkState.DISCONNECTED
            self._status = f"Connection failed: {e}"
            return False

        logger.info(f"Connected to {self.config.host}:{self.config.port} "
                    f"as {self.config.client_id}")
        return True

    def disconnect(self):
        """Manually disconnect from the broker."""
        was_connected = self._state == LinkState.CONNECTED
        self._state = LinkState.DISCONNECTED
        self._teardown()
        self._status = "Disconnected"
        if was_connected:
            logger.info("Disconnected from broker")
            self._notify_disconnect()

    def reconnect(self) -> bool:
        """Drop any current connection and connect again."""
        if self._state != LinkState.DISCONNECTED:
            self.disconnect()
        return self.connect()

    def _teardown(self):
        client = self._client
        self._client = None
        if client is None:
            return
        try:
            client.disconnect()
            client.loop_stop()
        except Exception as e:
            logger.debug(f"Error while closing MQTT client: {e}")

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code == 0:
            self._state = LinkState.CONNECTED
            self._status = f"Connected to {self.config.host}"
        else:
            self._connect_error = f"broker refused connection: {reason_code}"
            logger.warning(self._connect_error)
        self._connack.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        if self._state != LinkState.CONNECTED:
            return
        self._state = LinkState.DISCONNECTED
        self._status = "Disconnected"
        self._disconnects += 1
        logger.warning(f"Link lost: {reason_code}")
        self._notify_disconnect()

    def _notify_disconnect(self):
        for callback in list(self._disconnect_callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Disconnect callback error: {e}")

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, topic: str, payload: Union[str, bytes], qos: int = 0) -> bool:
        """
        Issue a publish without waiting for delivery.

        Returns:
            True if the message was handed to the transport, False if it was
            dropped (not connected or rejected by the client)
        """
        if not self.connected:
            self._dropped += 1
            return False

        if not self._transmit(topic, payload, int(qos)):
            self._dropped += 1
            return False

        self._published += 1
        text = payload.decode("ascii", errors="replace") if isinstance(payload, bytes) else payload
        self._status = f"Sent command: {text}"
        return True

    def _transmit(self, topic: str, payload: Union[str, bytes], qos: int) -> bool:
        client = self._client
        if client is None:
            return False
        info = client.publish(topic, payload, qos=qos, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Publish rejected by client: {mqtt.error_string(info.rc)}")
            return False
        return True

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def add_disconnect_callback(self, callback: Callable[[], None]):
        """Register a callback fired when the link goes down."""
        self._disconnect_callbacks.append(callback)

    @property
    def connected(self) -> bool:
        return self._state == LinkState.CONNECTED

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def status(self) -> str:
        """Human readable connection status."""
        return self._status

    @property
    def stats(self) -> dict:
        return {
            "published": self._published,
            "dropped": self._dropped,
            "disconnects": self._disconnects,
        }


class MockLinkSession(LinkSession):
    """
    In-memory link for simulation and tests.

    Records every issued publish in `messages`.

    Args:
        config: Broker parameters (only topic/host are used)
        clock: Timestamp source for recorded messages
        fail_connect: Make connect() fail
    """

    def __init__(self, config: Optional[LinkConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 fail_connect: bool = False):
        super().__init__(config)
        self._clock = clock
        self.fail_connect = fail_connect
        self.messages: List[PublishedMessage] = []
        self._lock = threading.Lock()

    def connect(self) -> bool:
        if self.fail_connect:
            self._state = LinkState.DISCONNECTED
            self._status = "Connection failed: mock broker unreachable"
            logger.error("Mock link connect failed")
            return False
        self._state = LinkState.CONNECTED
        self._status = f"Connected to {self.config.host}"
        logger.info("Mock link connected")
        return True

    def drop_connection(self):
        """Simulate a transport-detected disconnection."""
        if self._state != LinkState.CONNECTED:
            return
        self._state = LinkState.DISCONNECTED
        self._status = "Disconnected"
        self._disconnects += 1
        self._notify_disconnect()

    def _transmit(self, topic: str, payload: Union[str, bytes], qos: int) -> bool:
        if isinstance(payload, bytes):
            payload = payload.decode("ascii", errors="replace")
        with self._lock:
            self.messages.append(PublishedMessage(self._clock(), topic, payload, qos))
        return True

    def clear(self):
        """Forget recorded messages."""
        with self._lock:
            self.messages.clear()
