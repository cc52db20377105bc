"""Generic line-by-line builder — the universal last-resort fallback."""

from __future__ import annotations

from ._base import TraceBuilder
from ..patterns import CodePattern
from .. import constants


class GenericTraceBuilder(TraceBuilder):
    """One step per non-blank source line, in source order."""

    PATTERN = CodePattern.GENERIC.value

    def _build(self) -> None:
        for index, line in enumerate(self._lines):
            if not line.strip():
                continue
            self._emit(
                index,
                code=line,
                variables=constants.PLACEHOLDER_VARIABLES,
                explanation=f"Execute line {index + 1}",
            )

        if not self._steps:
            self._emit(
                0,
                variables=constants.PLACEHOLDER_VARIABLES,
                explanation="No statements to execute",
            )
