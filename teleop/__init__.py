"""
Joystick teleoperation client: conditions 2-axis stick input into a
bounded, fail-safe throttle/steer command stream published over MQTT.
"""

__version__ = "0.1.0"
