"""Tests for visualizer.trace_types."""

from __future__ import annotations

import pytest

from visualizer.trace_types import (
    EMPTY_TRACE,
    ExecutionStep,
    ExecutionTrace,
    TraceOrigin,
    clamp_index,
    is_well_formed_trace,
)


def _trace(count: int) -> ExecutionTrace:
    return ExecutionTrace(
        steps=tuple(ExecutionStep(line=i) for i in range(count)),
        origin=TraceOrigin.DETERMINISTIC,
    )


class TestExecutionStep:
    def test_defaults(self):
        step = ExecutionStep(line=3)
        assert step.call_stack == ("main",)
        assert step.frame == "main"
        assert dict(step.variables) == {}
        assert step.output == ""
        assert step.explanation is None

    def test_variables_are_read_only(self):
        step = ExecutionStep(line=0, variables={"n": 5})
        with pytest.raises(TypeError):
            step.variables["n"] = 6

    def test_variables_are_copied(self):
        source = {"n": 5}
        step = ExecutionStep(line=0, variables=source)
        source["n"] = 6
        assert step.variables["n"] == 5

    def test_call_stack_list_becomes_tuple(self):
        step = ExecutionStep(line=0, call_stack=["main", "fib(3)"])
        assert step.call_stack == ("main", "fib(3)")
        assert step.frame == "fib(3)"

    def test_wire_form_uses_camel_case(self):
        step = ExecutionStep(
            line=1,
            code="x = 1",
            variables={"x": 1},
            call_stack=("main",),
            output="1\n",
            explanation="assign",
        )
        assert step.to_dict() == {
            "line": 1,
            "code": "x = 1",
            "variables": {"x": 1},
            "callStack": ["main"],
            "output": "1\n",
            "explanation": "assign",
        }

    def test_wire_form_omits_missing_explanation(self):
        assert "explanation" not in ExecutionStep(line=0).to_dict()


class TestExecutionTrace:
    def test_sequence_protocol(self):
        trace = _trace(3)
        assert len(trace) == 3
        assert [step.line for step in trace] == [0, 1, 2]
        assert trace[2].line == 2
        assert trace.last_index == 2
        assert not trace.is_empty

    def test_empty_trace(self):
        assert EMPTY_TRACE.is_empty
        assert EMPTY_TRACE.last_index == 0
        assert EMPTY_TRACE.origin == TraceOrigin.EMPTY

    def test_to_dicts(self):
        assert [d["line"] for d in _trace(2).to_dicts()] == [0, 1]


class TestWellFormed:
    def test_builder_style_trace_is_well_formed(self):
        assert is_well_formed_trace(_trace(4))

    def test_empty_trace_is_well_formed(self):
        assert is_well_formed_trace(EMPTY_TRACE)

    def test_negative_line_is_rejected(self):
        trace = ExecutionTrace(steps=(ExecutionStep(line=-1),))
        assert not is_well_formed_trace(trace)

    def test_empty_call_stack_is_rejected(self):
        trace = ExecutionTrace(steps=(ExecutionStep(line=0, call_stack=()),))
        assert not is_well_formed_trace(trace)


class TestClampIndex:
    @pytest.mark.parametrize(
        "index, expected", [(-5, 0), (0, 0), (2, 2), (4, 4), (5, 4), (100, 4)]
    )
    def test_clamps_into_range(self, index, expected):
        assert clamp_index(_trace(5), index) == expected

    def test_empty_trace_pins_to_zero(self):
        assert clamp_index(EMPTY_TRACE, 7) == 0
