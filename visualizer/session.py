"""Trace generation pipeline and the session that feeds playback.

``TraceGenerator`` decides between deterministic builders and the remote
model, then reconciles the result. ``VisualizerSession`` tags every request
with a token so that a slow reply for an abandoned request can never
replace the trace of a newer one.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Optional

from .builders import build_trace
from .patterns import CodePattern, classify_pattern
from .playback import PlaybackController
from .remote import RemoteService
from .response_parser import resolve_trace
from .run_types import GenerationStats
from .trace_types import EMPTY_TRACE, ExecutionTrace, TraceOrigin

logger = logging.getLogger(__name__)

STAGE_DETERMINISTIC = "deterministic"

# Patterns whose builders are preferred over the remote model.
DETERMINISTIC_PATTERNS: frozenset[CodePattern] = frozenset(
    {CodePattern.FACTORIAL, CodePattern.FIBONACCI, CodePattern.MERGE_SORT}
)


class TraceGenerator:
    """Produces an ``ExecutionTrace`` for any source text; never raises."""

    def __init__(self, remote: RemoteService, language: str = "python"):
        self._remote = remote
        self._language = language

    def generate(self, source: str, language: Optional[str] = None) -> ExecutionTrace:
        trace, _ = self.generate_with_stats(source, language)
        return trace

    def generate_with_stats(
        self, source: str, language: Optional[str] = None
    ) -> tuple[ExecutionTrace, GenerationStats]:
        lang = language or self._language
        t_start = time.perf_counter()
        stats = GenerationStats(
            source_bytes=len(source.encode("utf-8")),
            source_lines=source.count("\n") + 1 if source else 0,
            language=lang,
        )

        if not source.strip():
            logger.info("Empty source, nothing to trace")
            stats.origin = TraceOrigin.EMPTY.value
            stats.total_time = time.perf_counter() - t_start
            return EMPTY_TRACE, stats

        t0 = time.perf_counter()
        pattern = classify_pattern(source, lang)
        stats.classify_time = time.perf_counter() - t0
        stats.pattern = pattern.value
        logger.info("Generating trace for %s source (pattern=%s)", lang, pattern.value)

        if pattern in DETERMINISTIC_PATTERNS:
            t0 = time.perf_counter()
            trace = build_trace(pattern, source)
            stats.build_time = time.perf_counter() - t0
            stats.parse_stage = STAGE_DETERMINISTIC
        else:
            reply = None
            if self._remote.has_credential():
                t0 = time.perf_counter()
                reply = self._remote.generate_trace(source, lang)
                stats.remote_time = time.perf_counter() - t0
                stats.remote_calls = 1
            t0 = time.perf_counter()
            resolved = resolve_trace(reply, source, pattern)
            stats.build_time = time.perf_counter() - t0
            stats.parse_stage = resolved.stage
            trace = resolved.value
            if not trace.pattern:
                trace = replace(trace, pattern=pattern.value)

        stats.origin = trace.origin.value
        stats.step_count = len(trace)
        stats.total_time = time.perf_counter() - t_start
        logger.info(
            "Trace ready: %d steps (origin=%s, stage=%s) in %.1fms",
            len(trace),
            stats.origin,
            stats.parse_stage,
            stats.total_time * 1000,
        )
        return trace, stats


class VisualizerSession:
    """Connects a ``TraceGenerator`` to a ``PlaybackController``.

    All methods must be called from the thread running the controller's
    event loop; only generation itself is pushed to a worker thread.
    """

    def __init__(self, generator: TraceGenerator, controller: PlaybackController):
        self._generator = generator
        self._controller = controller
        self._latest_token = 0
        self.last_stats: Optional[GenerationStats] = None

    @property
    def controller(self) -> PlaybackController:
        return self._controller

    @property
    def latest_token(self) -> int:
        return self._latest_token

    def request(self) -> int:
        """Start a new request; any request still in flight becomes stale."""
        self._latest_token += 1
        self._controller.pause()
        return self._latest_token

    def is_current(self, token: int) -> bool:
        return token == self._latest_token

    def deliver(
        self,
        token: int,
        trace: ExecutionTrace,
        stats: Optional[GenerationStats] = None,
    ) -> bool:
        """Load *trace* if *token* is still the latest request."""
        if not self.is_current(token):
            logger.info(
                "Discarding stale trace for request %d (latest is %d)",
                token,
                self._latest_token,
            )
            return False
        self.last_stats = stats
        self._controller.load_trace(trace)
        return True

    async def visualize(self, source: str, language: Optional[str] = None) -> bool:
        """Generate off the event loop, then load unless superseded."""
        token = self.request()
        trace, stats = await asyncio.to_thread(
            self._generator.generate_with_stats, source, language
        )
        return self.deliver(token, trace, stats)

    def generate_and_load(
        self, source: str, language: Optional[str] = None
    ) -> ExecutionTrace:
        token = self.request()
        trace, stats = self._generator.generate_with_stats(source, language)
        self.deliver(token, trace, stats)
        return trace
