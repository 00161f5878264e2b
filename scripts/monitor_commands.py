#!/usr/bin/env python3
"""
Command Monitor
===============

Subscribe to the control topic and print decoded commands, with the time
since the previous command. Useful to check the stop burst and the publish
rate from the vehicle's point of view.

Usage:
    python scripts/monitor_commands.py

    # Custom broker / topic
    python scripts/monitor_commands.py --host 192.168.1.10 --topic Car/Control

    # CSV output
    python scripts/monitor_commands.py --csv
"""

import argparse
import signal
import sys
import time

import paho.mqtt.client as mqtt

# Add parent directory to path for imports
sys.path.insert(0, '.')

try:
    from teleop.control.commands import AnalogCommand, parse_payload
except ImportError as e:
    print(f"ERROR: Cannot import teleop package: {e}")
    print("Run from project root: python scripts/monitor_commands.py")
    sys.exit(1)


# Global flag for clean shutdown
running = True
last_time = 0.0
message_count = 0
error_count = 0


def signal_handler(sig, frame):
    """Handle Ctrl+C gracefully."""
    global running
    running = False
    print("\nShutting down...")


def format_command(command) -> str:
    """One-line description of a decoded command."""
    if isinstance(command, AnalogCommand):
        if command.is_stop:
            return "STOP"
        return f"throttle {command.throttle:+5.2f}  steer {command.steer:+5.2f}"
    return f"{command.name} ({command.value})"


def main():
    parser = argparse.ArgumentParser(description="Print commands published on the control topic")
    parser.add_argument("--host", default="mqttgo.io",
                        help="MQTT broker host (default: mqttgo.io)")
    parser.add_argument("--port", "-p", type=int, default=1883,
                        help="MQTT broker port (default: 1883)")
    parser.add_argument("--topic", "-t", default="Car/Control",
                        help="Control topic (default: Car/Control)")
    parser.add_argument("--client-id", default="teleop_monitor",
                        help="MQTT client identifier")
    parser.add_argument("--csv", action="store_true",
                        help="Output as CSV format")

    args = parser.parse_args()

    signal.signal(signal.SIGINT, signal_handler)

    def on_connect(client, userdata, flags, reason_code, properties):
        if reason_code == 0:
            client.subscribe(args.topic, qos=1)
            if not args.csv:
                print(f"Subscribed to {args.topic}")
        else:
            print(f"ERROR: Broker refused connection: {reason_code}")

    def on_message(client, userdata, msg):
        global last_time, message_count, error_count
        now = time.time()
        gap_ms = (now - last_time) * 1000 if last_time else 0.0
        last_time = now

        try:
            command = parse_payload(msg.payload)
        except ValueError as e:
            error_count += 1
            print(f"?? {msg.payload!r}: {e}")
            return

        message_count += 1
        if args.csv:
            print(f"{now:.3f},{msg.qos},{msg.payload.decode('ascii')},{gap_ms:.0f}")
        else:
            print(f"{gap_ms:7.0f}ms  qos={msg.qos}  {format_command(command)}")

    client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=args.client_id,
        clean_session=True,
    )
    client.on_connect = on_connect
    client.on_message = on_message

    print(f"Connecting to {args.host}:{args.port}...")
    try:
        client.connect(args.host, args.port, keepalive=20)
    except Exception as e:
        print(f"ERROR: Failed to connect: {e}")
        sys.exit(1)

    if args.csv:
        print("timestamp,qos,payload,gap_ms")

    client.loop_start()
    while running:
        time.sleep(0.1)

    # Cleanup
    client.disconnect()
    client.loop_stop()

    print(f"\n{message_count} commands received, {error_count} undecodable")


if __name__ == "__main__":
    main()
