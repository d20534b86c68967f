"""
02: Parallel map

strand.each runs one task per item and waits for all of them. Wall-clock
time is bounded by the slowest item, not the sum.

Run: python examples/02_each.py
"""

from __future__ import annotations

import os
import sys
import time

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import strand


def main() -> None:
    delays_ms = [30, 10, 20]

    def work(ms: int) -> None:
        time.sleep(ms / 1000)
        print(f"  finished {ms}ms item")

    print("Parallel map over", delays_ms)
    print("=" * 60)
    t0 = time.monotonic()
    strand.each(delays_ms, work)
    elapsed_ms = (time.monotonic() - t0) * 1000

    print(f"\n{'-' * 60}")
    print(f"  wall time:        {elapsed_ms:.0f}ms")
    print(f"  serial estimate:  {sum(delays_ms)}ms")


if __name__ == "__main__":
    main()
