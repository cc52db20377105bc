"""Tests for visualizer.session — generation pipeline and stale-request handling."""

from __future__ import annotations

import asyncio
import json
import threading

import pytest

from visualizer.patterns import CodePattern
from visualizer.playback import PlaybackController, PlaybackStatus, Scheduler, TimerHandle
from visualizer.remote import OfflineRemoteService, RemoteReply, RemoteService
from visualizer.session import TraceGenerator, VisualizerSession
from visualizer.trace_types import ExecutionStep, ExecutionTrace, TraceOrigin

GENERIC_SOURCE = "x = 1\nprint(x)\n"

FACTORIAL_SOURCE = """\
def calculate_factorial(n):
    if n <= 1:
        return 1
    return n * calculate_factorial(n - 1)

result = calculate_factorial(5)
"""

REMOTE_TRACE = json.dumps(
    {
        "executionTrace": [
            {"line": 0, "code": "x = 1", "variables": {"x": 1}, "callStack": ["main"]},
            {"line": 1, "code": "print(x)", "callStack": ["main"], "output": "1\n"},
        ]
    }
)


class FakeTimer(TimerHandle):
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    @property
    def active(self):
        return not self.cancelled


class FakeScheduler(Scheduler):
    def schedule_repeating(self, interval, callback):
        return FakeTimer()


class FakeRemoteService(RemoteService):
    """Answers every trace request with a fixed reply."""

    def __init__(self, reply: RemoteReply, credential: bool = True):
        self._reply = reply
        self._credential = credential
        self.trace_requests: list[str] = []

    def has_credential(self):
        return self._credential

    def generate_trace(self, source, language):
        self.trace_requests.append(source)
        return self._reply

    def analyze(self, source, language):
        return self._reply

    def explain(self, source, language):
        return self._reply

    def answer(self, source, language, question):
        return self._reply


class GatedGenerator(TraceGenerator):
    """Blocks generation for one source until its gate is opened."""

    def __init__(self, gates: dict[str, threading.Event]):
        super().__init__(OfflineRemoteService())
        self._gates = gates

    def generate_with_stats(self, source, language=None):
        gate = self._gates.get(source)
        if gate is not None:
            gate.wait(timeout=5)
        return super().generate_with_stats(source, language)


class TestTraceGenerator:
    def test_empty_source(self):
        trace, stats = TraceGenerator(OfflineRemoteService()).generate_with_stats("  \n")
        assert trace.is_empty
        assert trace.origin == TraceOrigin.EMPTY
        assert stats.origin == "empty"

    def test_recognised_pattern_skips_remote(self):
        remote = FakeRemoteService(RemoteReply(ok=True, text=REMOTE_TRACE))
        trace, stats = TraceGenerator(remote).generate_with_stats(FACTORIAL_SOURCE)
        assert remote.trace_requests == []
        assert trace.origin == TraceOrigin.DETERMINISTIC
        assert stats.pattern == CodePattern.FACTORIAL.value
        assert stats.parse_stage == "deterministic"

    def test_generic_uses_remote(self):
        remote = FakeRemoteService(RemoteReply(ok=True, text=REMOTE_TRACE))
        trace, stats = TraceGenerator(remote).generate_with_stats(GENERIC_SOURCE)
        assert remote.trace_requests == [GENERIC_SOURCE]
        assert trace.origin == TraceOrigin.REMOTE
        assert trace.pattern == CodePattern.GENERIC.value
        assert stats.remote_calls == 1
        assert stats.parse_stage == "direct"
        assert stats.step_count == 2

    def test_remote_failure_falls_back(self):
        remote = FakeRemoteService(RemoteReply.failure(status=429))
        trace, stats = TraceGenerator(remote).generate_with_stats(GENERIC_SOURCE)
        assert trace.origin == TraceOrigin.FALLBACK
        assert len(trace) == 2
        assert stats.parse_stage == "fallback"

    def test_no_credential_never_calls_remote(self):
        remote = FakeRemoteService(RemoteReply(ok=True, text=REMOTE_TRACE), credential=False)
        trace = TraceGenerator(remote).generate(GENERIC_SOURCE)
        assert remote.trace_requests == []
        assert trace.origin == TraceOrigin.FALLBACK

    def test_stats_report(self):
        _, stats = TraceGenerator(OfflineRemoteService()).generate_with_stats(GENERIC_SOURCE)
        report = stats.report()
        assert "Trace Generation Statistics" in report
        assert "generic" in report


class TestVisualizerSession:
    def _session(self):
        controller = PlaybackController(FakeScheduler())
        return VisualizerSession(TraceGenerator(OfflineRemoteService()), controller)

    def test_generate_and_load(self):
        session = self._session()
        trace = session.generate_and_load(GENERIC_SOURCE)
        assert session.controller.trace is trace
        assert session.controller.state.status == PlaybackStatus.READY
        assert session.last_stats.step_count == len(trace)

    def test_stale_token_is_discarded(self):
        session = self._session()
        stale = session.request()
        fresh = session.request()
        old = ExecutionTrace(steps=(ExecutionStep(line=0),))
        new = ExecutionTrace(steps=(ExecutionStep(line=1), ExecutionStep(line=2)))

        assert session.deliver(fresh, new)
        assert not session.deliver(stale, old)
        assert session.controller.trace is new

    def test_new_request_pauses_playback(self):
        session = self._session()
        session.generate_and_load(GENERIC_SOURCE)
        session.controller.play()
        session.request()
        assert session.controller.state.status == PlaybackStatus.READY

    @pytest.mark.asyncio
    async def test_visualize_loads_trace(self):
        session = self._session()
        assert await session.visualize(FACTORIAL_SOURCE)
        assert session.controller.trace.pattern == CodePattern.FACTORIAL.value

    @pytest.mark.asyncio
    async def test_late_result_of_superseded_request_is_dropped(self):
        slow_gate = threading.Event()
        controller = PlaybackController(FakeScheduler())
        session = VisualizerSession(
            GatedGenerator({FACTORIAL_SOURCE: slow_gate}), controller
        )

        slow = asyncio.create_task(session.visualize(FACTORIAL_SOURCE))
        await asyncio.sleep(0)
        fast = asyncio.create_task(session.visualize(GENERIC_SOURCE))

        assert await fast
        slow_gate.set()
        assert not await slow
        assert controller.trace.pattern == CodePattern.GENERIC.value
