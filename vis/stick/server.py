#!/usr/bin/env python3
"""
Web Stick Adapter
=================

Flask server acting as the input sampler for the teleop client:
- REST endpoints for stick movement, release and the control buttons
- SSE streaming of the status snapshot taken after each tick

A browser page (or any HTTP client) posts normalized stick vectors; the
server never publishes directly, it only feeds the pipeline. Requests are
handled on concurrent threads; the pipeline serializes stick events against
release so a late stick request never lands inside a release.

Usage:
    uv run python vis/stick/server.py --host 0.0.0.0 --port 8081
    uv run python vis/stick/server.py --simulation   # no broker
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from flask import Flask, Response, jsonify, request

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from teleop.main import TeleopApp, TeleopConfig

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Global teleop client
teleop: Optional[TeleopApp] = None


def init_teleop(config: TeleopConfig) -> TeleopApp:
    """Create and start the teleop client, replacing any existing one."""
    global teleop

    if teleop is not None:
        teleop.stop()

    teleop = TeleopApp(config)
    teleop.start()
    logger.info(f"Teleop client started ({config.mode} mode)")
    return teleop


def _not_ready():
    return jsonify({"error": "Teleop client not initialized"}), 503


def _parse_axis(data: dict, key: str) -> float:
    value = data.get(key)
    if value is None:
        raise ValueError(f"missing field '{key}'")
    return float(value)


# =============================================================================
# SSE Streaming
# =============================================================================

@app.route('/stream')
def stream():
    """
    Server-Sent Events endpoint for the status snapshot.

    Streams JSON at the tick rate.
    """
    def generate():
        interval = teleop.config.conditioner.tick_interval_s if teleop else 0.1
        last_sent = None

        while True:
            if teleop is None:
                data = {"connected": False, "error": "Teleop client not initialized"}
            else:
                data = teleop.status.to_dict()

            if data != last_sent:
                last_sent = data
                yield f"data: {json.dumps(data)}\n\n"

            time.sleep(interval)

    return Response(
        generate(),
        mimetype='text/event-stream',
        headers={
            'Cache-Control': 'no-cache',
            'Connection': 'keep-alive',
            'X-Accel-Buffering': 'no'  # Disable nginx buffering
        }
    )


# =============================================================================
# REST API
# =============================================================================

@app.route('/api/status')
def get_status():
    """Get the current status snapshot and statistics."""
    if teleop is None:
        return _not_ready()

    return jsonify({
        "status": teleop.status.to_dict(),
        "pipeline": teleop.pipeline.stats,
        "link": teleop.link.stats,
    })


@app.route('/api/stick', methods=['POST'])
def stick_active():
    """
    Pointer active.

    Body: {"dx": float, "dy": float}, each in [-1, 1], screen convention
    (up = negative dy). Out-of-range values are clamped.
    """
    if teleop is None:
        return _not_ready()

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No stick data provided"}), 400

    try:
        vector = (_parse_axis(data, 'dx'), _parse_axis(data, 'dy'))
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid stick data: {e}"}), 400

    teleop.on_active(vector)
    return jsonify({"success": True})


@app.route('/api/release', methods=['POST'])
def stick_released():
    """Pointer released."""
    if teleop is None:
        return _not_ready()

    teleop.on_released()
    return jsonify({"success": True, "status": teleop.status.to_dict()})


@app.route('/api/stop', methods=['POST'])
def stop_button():
    """STOP button."""
    if teleop is None:
        return _not_ready()

    teleop.emergency_stop()
    return jsonify({"success": True, "status": teleop.status.to_dict()})


@app.route('/api/reverse', methods=['POST'])
def reverse_button():
    """R button (digital mode only)."""
    if teleop is None:
        return _not_ready()

    if not teleop.reverse():
        return jsonify({"success": False, "error": "Reverse not sent"}), 409
    return jsonify({"success": True})


@app.route('/api/link/reconnect', methods=['POST'])
def reconnect_link():
    """Reconnect to the broker."""
    if teleop is None:
        return _not_ready()

    if teleop.reconnect():
        return jsonify({"success": True, "message": teleop.link.status})
    return jsonify({"success": False, "error": teleop.link.status}), 502


@app.route('/api/link/disconnect', methods=['POST'])
def disconnect_link():
    """Disconnect from the broker (stops the vehicle first)."""
    if teleop is None:
        return _not_ready()

    teleop.disconnect()
    return jsonify({"success": True, "message": teleop.link.status})


# =============================================================================
# Main
# =============================================================================

def main():
    parser = argparse.ArgumentParser(description='Web stick adapter for the teleop client')
    parser.add_argument('--host', default='0.0.0.0',
                        help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--port', '-p', type=int, default=8081,
                        help='Port to run server on (default: 8081)')
    parser.add_argument('--config', '-c',
                        help='Teleop JSON configuration file')
    parser.add_argument('--mode', choices=['analog', 'digital'],
                        help='Command variant')
    parser.add_argument('--simulation', action='store_true',
                        help='Use an in-memory link instead of the broker')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug mode')

    args = parser.parse_args()

    config = TeleopConfig.from_json(args.config) if args.config else TeleopConfig()
    if args.mode:
        config.mode = args.mode
    if args.simulation:
        config.simulation = True

    init_teleop(config)

    logger.info(f"Starting server at http://{args.host}:{args.port}")

    try:
        app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)
    finally:
        if teleop is not None:
            teleop.stop()
            logger.info("Teleop client stopped")


if __name__ == '__main__':
    main()
