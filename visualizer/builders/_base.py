"""TraceBuilder — shared infrastructure for the deterministic trace builders."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from ..trace_types import ExecutionStep, ExecutionTrace, TraceOrigin
from .. import constants

logger = logging.getLogger(__name__)


class TraceBuilder(ABC):
    """Base class for hand-authored trace builders.

    Subclasses implement ``_build`` using ``_emit``, ``_push_frame``,
    ``_pop_frame`` and ``_print``; ``build`` resets all per-run state, so one
    instance can be reused for any number of sources.
    """

    PATTERN: str = ""

    def __init__(self):
        self._lines: list[str] = []
        self._source: str = ""
        self._steps: list[ExecutionStep] = []
        self._call_stack: list[str] = [constants.MAIN_FRAME_NAME]
        self._output: str = ""

    # ── helpers ──────────────────────────────────────────────────

    def _line_text(self, index: int, fallback: str = "") -> str:
        if 0 <= index < len(self._lines):
            return self._lines[index].strip() or fallback
        return fallback

    def _emit(
        self,
        line: int,
        *,
        variables: Optional[Mapping[str, Any]] = None,
        code: str = "",
        fallback_code: str = "",
        explanation: str | None = None,
    ) -> ExecutionStep:
        step = ExecutionStep(
            line=max(line, 0),
            code=code or self._line_text(line, fallback_code),
            variables=variables or {},
            call_stack=tuple(self._call_stack),
            output=self._output,
            explanation=explanation,
        )
        self._steps.append(step)
        return step

    def _push_frame(self, label: str):
        self._call_stack.append(label)

    def _pop_frame(self):
        if len(self._call_stack) > 1:
            self._call_stack.pop()

    def _print(self, text: str):
        self._output += text + "\n"

    # ── entry point ──────────────────────────────────────────────

    def build(self, source: str) -> ExecutionTrace:
        self._source = source
        self._lines = source.split("\n")
        self._steps = []
        self._call_stack = [constants.MAIN_FRAME_NAME]
        self._output = ""
        self._build()
        logger.debug("%s: built %d steps", type(self).__name__, len(self._steps))
        return ExecutionTrace(
            steps=tuple(self._steps),
            origin=TraceOrigin.DETERMINISTIC,
            pattern=self.PATTERN,
        )

    @abstractmethod
    def _build(self) -> None: ...
