#!/usr/bin/env python3
"""
Profile Replay
==============

Run a synthetic stick profile through the control path on a simulated
clock and print every publish. No broker needed.

Usage:
    python scripts/replay_profile.py --profile drive_and_stop
    python scripts/replay_profile.py --profile tremor --mode digital --seed 3
"""

import argparse
import math
import sys

# Add parent directory to path for imports
sys.path.insert(0, '.')

from teleop.control.conditioning import ConditionerConfig
from teleop.control.modes import CommandMode
from teleop.simulation import ProfileType, get_profile, replay


def main():
    parser = argparse.ArgumentParser(description="Replay a stick profile offline")
    parser.add_argument("--profile", choices=[p.value for p in ProfileType],
                        default=ProfileType.DRIVE_AND_STOP.value,
                        help="Stick profile (default: drive_and_stop)")
    parser.add_argument("--mode", choices=[m.value for m in CommandMode],
                        default=CommandMode.ANALOG.value,
                        help="Command variant (default: analog)")
    parser.add_argument("--tick-ms", type=float, default=80.0,
                        help="Tick interval in milliseconds (default: 80)")
    parser.add_argument("--rate", "-r", type=float, default=60.0,
                        help="Sampler rate in Hz (default: 60)")
    parser.add_argument("--seed", type=int, default=None,
                        help="RNG seed for noisy profiles")

    args = parser.parse_args()

    config = ConditionerConfig(tick_interval_s=args.tick_ms / 1000.0)
    trace = get_profile(ProfileType(args.profile), rate_hz=args.rate, seed=args.seed)
    result = replay(trace, CommandMode(args.mode), config)

    print(f"Profile {args.profile}: {len(trace)} samples, {result.duration_s:.2f}s")
    print("=" * 50)
    for message in result.messages:
        print(f"{message.timestamp:7.3f}s  qos={message.qos}  {message.payload}")
    print("=" * 50)

    bound = math.ceil(result.duration_s / config.tick_interval_s) + 1
    print(f"{len(result.messages)} publishes in {result.ticks} ticks (rate bound {bound})")
    print(f"{len(result.stop_messages)} at-least-once stop commands")


if __name__ == "__main__":
    main()
