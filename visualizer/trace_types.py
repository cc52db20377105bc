"""Trace data types for step-by-step execution replay."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from . import constants


class TraceOrigin(str, Enum):
    """Where a trace came from."""

    DETERMINISTIC = "deterministic"
    REMOTE = "remote"
    FALLBACK = "fallback"
    EMPTY = "empty"


@dataclass(frozen=True)
class ExecutionStep:
    """One synthesized snapshot of program state.

    ``line`` is zero-based and may point past the end of the source for
    synthetic steps; renderers clamp it. ``output`` is the cumulative program
    output visible through this step.
    """

    line: int
    code: str = ""
    variables: Mapping[str, Any] = field(default_factory=dict)
    call_stack: tuple[str, ...] = (constants.MAIN_FRAME_NAME,)
    output: str = ""
    explanation: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))
        object.__setattr__(self, "call_stack", tuple(self.call_stack))

    @property
    def frame(self) -> str:
        """Label of the innermost frame, or empty for a bare step."""
        return self.call_stack[-1] if self.call_stack else ""

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "line": self.line,
            "code": self.code,
            "variables": dict(self.variables),
            "callStack": list(self.call_stack),
            "output": self.output,
        }
        if self.explanation is not None:
            d["explanation"] = self.explanation
        return d


@dataclass(frozen=True)
class ExecutionTrace:
    """Complete synthesized run, ordered first observable state to termination.

    Never mutated: regenerating a trace produces a new object, so a holder of
    an old trace and a stale index never observes torn state.
    """

    steps: tuple[ExecutionStep, ...] = ()
    origin: TraceOrigin = TraceOrigin.EMPTY
    pattern: str = ""

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[ExecutionStep]:
        return iter(self.steps)

    def __getitem__(self, index: int) -> ExecutionStep:
        return self.steps[index]

    @property
    def is_empty(self) -> bool:
        return not self.steps

    @property
    def last_index(self) -> int:
        return max(len(self.steps) - 1, 0)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [step.to_dict() for step in self.steps]


EMPTY_TRACE = ExecutionTrace()


def is_well_formed_trace(trace: ExecutionTrace) -> bool:
    """True when every step has a non-negative line and a non-empty call stack."""
    return all(step.line >= 0 and len(step.call_stack) > 0 for step in trace.steps)


def clamp_index(trace: ExecutionTrace, index: int) -> int:
    """Clamp *index* into ``[0, len(trace) - 1]``; 0 for an empty trace."""
    if not trace.steps:
        return 0
    return min(max(index, 0), len(trace.steps) - 1)
