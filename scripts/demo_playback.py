#!/usr/bin/env python3
"""Demo: classify, build and replay traces for the bundled sample programs.

Exercises the offline pipeline end to end:
  1. Each sample is classified into a code pattern
  2. The deterministic builder for that pattern synthesizes a trace
  3. Two overlapping requests show that the stale one is discarded
  4. The surviving trace is replayed on the asyncio scheduler

Usage:
    poetry run python scripts/demo_playback.py
    poetry run python scripts/demo_playback.py --speed 4
    poetry run python scripts/demo_playback.py --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure repo root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from visualizer.patterns import classify_pattern
from visualizer.playback import AsyncioScheduler, PlaybackController, PlaybackState
from visualizer.remote import OfflineRemoteService
from visualizer.session import TraceGenerator, VisualizerSession

SAMPLES: dict[str, str] = {
    "factorial": """\
def calculate_factorial(n):
    if n <= 1:
        return 1
    return n * calculate_factorial(n - 1)

result = calculate_factorial(5)
print(f"Factorial of 5 is {result}")
""",
    "fibonacci": """\
def fib(n):
    if n <= 1:
        return n
    return fib(n - 1) + fib(n - 2)

result = fib(4)
print("Fibonacci:", result)
""",
    "merge sort": """\
def merge(arr, left, mid, right):
    n1 = mid - left + 1
    n2 = right - mid
    L = [0] * n1
    R = [0] * n2

def merge_sort(arr, left, right):
    if left < right:
        mid = (left + right) // 2
        merge_sort(arr, left, mid)
        merge_sort(arr, mid + 1, right)
        merge(arr, left, mid, right)

def print_list(arr):
    print(" ".join(str(x) for x in arr))

if __name__ == "__main__":
    arr = [38, 27, 43, 3, 9, 82, 10]
    print("Given array is")
    print_list(arr)
    merge_sort(arr, 0, len(arr) - 1)
    print("\\nSorted array is")
    print_list(arr)
""",
    "generic": """\
total = 0
for i in range(3):
    total = total + i
print(total)
""",
}


def _print_header(title: str):
    width = 60
    print(f"\n{'=' * width}")
    print(f"  {title}")
    print(f"{'=' * width}\n")


def _summarize(generator: TraceGenerator):
    for name, source in SAMPLES.items():
        trace, stats = generator.generate_with_stats(source)
        print(
            f"  {name:<12} pattern={classify_pattern(source).value:<26} "
            f"steps={len(trace):>3}  origin={stats.origin}"
        )


async def _replay(speed: float):
    controller = PlaybackController(AsyncioScheduler())
    session = VisualizerSession(TraceGenerator(OfflineRemoteService()), controller)
    finished = asyncio.Event()

    def on_change(state: PlaybackState):
        if state.is_playing:
            step = controller.current_step
            print(
                f"  [{state.current_step_index:>2}] line {step.line:>2}  "
                f"{' > '.join(step.call_stack)}"
            )
        elif state.step_count and state.current_step_index == state.step_count - 1:
            finished.set()

    controller.subscribe(on_change)

    stale = asyncio.create_task(session.visualize(SAMPLES["fibonacci"]))
    fresh = asyncio.create_task(session.visualize(SAMPLES["merge sort"]))
    stale_loaded, fresh_loaded = await asyncio.gather(stale, fresh)
    print(f"  first request loaded:  {stale_loaded}")
    print(f"  second request loaded: {fresh_loaded}")
    print(f"  loaded pattern: {controller.trace.pattern}\n")

    controller.set_speed(speed)
    controller.play()
    await finished.wait()
    print(f"\n  Output:\n{controller.current_step.output}")


def main():
    parser = argparse.ArgumentParser(description="Trace playback demo")
    parser.add_argument(
        "--speed",
        "-s",
        type=float,
        default=4.0,
        help="Playback speed multiplier (default: 4)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    _print_header("Classification and deterministic traces")
    _summarize(TraceGenerator(OfflineRemoteService()))

    _print_header(f"Overlapping requests, then replay at {args.speed}x")
    asyncio.run(_replay(args.speed))


if __name__ == "__main__":
    main()
