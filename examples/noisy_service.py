#!/usr/bin/env python3
"""
Noisy service - prints a status line every 100 ms for a while.

Used as the monitored command in examples/outmon.yaml.
"""

import argparse
import random
import time
from datetime import datetime


def main():
    parser = argparse.ArgumentParser(description="Print status lines")
    parser.add_argument("--seconds", type=float, default=10.0)
    args = parser.parse_args()

    deadline = time.time() + args.seconds
    seq = 0
    while time.time() < deadline:
        load = random.random()
        print(f"{datetime.now().isoformat()} seq={seq} load={load:.3f}", flush=True)
        seq += 1
        time.sleep(0.1)


if __name__ == "__main__":
    main()
