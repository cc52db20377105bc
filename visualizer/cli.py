"""Command-line entry point: ``trace-visualizer FILE [options]``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import math
import os
import sys
from dataclasses import replace
from typing import Optional, Sequence

from .api import (
    analyze_code,
    answer_question,
    dump_trace,
    explain_code,
    remote_service_from_config,
    trace_to_json,
)
from .playback import AsyncioScheduler, PlaybackController, PlaybackState, PlaybackStatus
from .remote import OfflineRemoteService, RemoteService
from .run_types import VisualizerConfig
from .session import TraceGenerator
from .trace_types import ExecutionTrace
from . import constants

logger = logging.getLogger(__name__)

DEMO_SOURCE = """\
def calculate_factorial(n):
    if n <= 1:
        return 1
    return n * calculate_factorial(n - 1)

result = calculate_factorial(5)
print(f"Factorial of 5 is {result}")
"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trace-visualizer",
        description="Step-through execution visualizer",
    )
    parser.add_argument("file", nargs="?", help="Source file to visualize")
    parser.add_argument("--language", "-l", default=None,
                        choices=constants.SUPPORTED_LANGUAGES,
                        help="Source language (default: python)")
    parser.add_argument("--provider", "-p", default=None,
                        choices=sorted(constants.PROVIDER_KEY_ENV),
                        help="Remote model provider (default: $VISUALIZER_PROVIDER or groq)")
    parser.add_argument("--model", "-m", default=None,
                        help="Remote model name override")
    parser.add_argument("--offline", action="store_true",
                        help="Never contact the remote model")
    parser.add_argument("--json", action="store_true",
                        help="Print the trace as JSON")
    parser.add_argument("--play", action="store_true",
                        help="Replay the trace step by step in the terminal")
    parser.add_argument("--speed", "-s", type=float,
                        default=constants.DEFAULT_SPEED_MULTIPLIER,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--analyze", action="store_true",
                        help="Print a complexity analysis")
    parser.add_argument("--explain", action="store_true",
                        help="Print a line-by-line explanation")
    parser.add_argument("--ask", metavar="QUESTION", default=None,
                        help="Ask a question about the code")
    parser.add_argument("--stats", action="store_true",
                        help="Print trace generation statistics")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    return parser


def _config_from_args(args: argparse.Namespace) -> VisualizerConfig:
    environ = dict(os.environ)
    if args.provider:
        environ["VISUALIZER_PROVIDER"] = args.provider
    if args.model:
        environ["VISUALIZER_MODEL"] = args.model
    config = VisualizerConfig.from_env(environ)
    return replace(
        config,
        language=args.language or config.language,
        credential_present=config.credential_present and not args.offline,
        speed_multiplier=args.speed,
    )


def _format_state(trace: ExecutionTrace, state: PlaybackState) -> str:
    step = trace[state.current_step_index]
    variables = ", ".join(f"{k}={v!r}" for k, v in step.variables.items())
    return (
        f"[{state.current_step_index + 1}/{state.step_count}] "
        f"line {step.line}: {step.code}\n"
        f"    stack: {' > '.join(step.call_stack)}\n"
        f"    vars:  {variables or '-'}"
        + (f"\n    note:  {step.explanation}" if step.explanation else "")
    )


async def _play(trace: ExecutionTrace, speed: float) -> None:
    controller = PlaybackController(AsyncioScheduler())
    finished = asyncio.Event()
    previous: list[PlaybackStatus] = [PlaybackStatus.IDLE]

    def on_change(state: PlaybackState) -> None:
        if state.status == PlaybackStatus.PLAYING:
            print(_format_state(trace, state))
        if previous[0] == PlaybackStatus.PLAYING and state.status == PlaybackStatus.READY:
            finished.set()
        previous[0] = state.status

    controller.subscribe(on_change)
    controller.set_speed(speed)
    controller.load_trace(trace)
    controller.play()
    await finished.wait()
    output = trace[trace.last_index].output
    if output:
        print("═══ Output ═══")
        print(output.rstrip("\n"))


def _read_source(path: Optional[str]) -> str:
    if not path:
        print("No file provided. Using built-in demo:\n")
        print(DEMO_SOURCE)
        return DEMO_SOURCE
    with open(path) as f:
        return f.read()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )
    if not math.isfinite(args.speed) or args.speed <= 0:
        parser.error("--speed must be a positive number")

    config = _config_from_args(args)
    source = _read_source(args.file)
    language = config.language

    remote: RemoteService = (
        remote_service_from_config(config)
        if config.credential_present
        else OfflineRemoteService()
    )
    logger.info(
        "Provider=%s, credential=%s, language=%s",
        config.provider,
        config.credential_present,
        language,
    )

    if args.analyze:
        analysis = analyze_code(source, language, remote)
        print("═══ Analysis ═══")
        print(analysis.explanation)
        print(f"  Time:  {analysis.complexity.time}")
        print(f"  Space: {analysis.complexity.space}")
        for suggestion in analysis.suggestions:
            print(f"  - {suggestion}")
        return 0

    if args.explain:
        explanation = explain_code(source, language, remote)
        print("═══ Explanation ═══")
        print(explanation.summary)
        for line in explanation.line_by_line:
            print(f"  {line.line:>3}  {line.code}")
            print(f"       {line.explanation}")
        return 0

    if args.ask is not None:
        answer = answer_question(source, args.ask, language, remote)
        print(answer.answer)
        return 0

    trace, stats = TraceGenerator(remote, language).generate_with_stats(source)
    if args.play and not trace.is_empty:
        asyncio.run(_play(trace, config.speed_multiplier))
    else:
        print(trace_to_json(trace) if args.json else dump_trace(trace))

    if args.stats:
        print()
        print(stats.report())
    return 0


if __name__ == "__main__":
    sys.exit(main())
