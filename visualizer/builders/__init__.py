"""Deterministic trace builders, one per recognised code pattern."""

from __future__ import annotations

import logging

from ._base import TraceBuilder
from .generic import GenericTraceBuilder
from .merge_sort import MergeSortTraceBuilder
from .recursion import FactorialTraceBuilder, FibonacciTraceBuilder
from ..patterns import CodePattern
from ..trace_types import ExecutionTrace

logger = logging.getLogger(__name__)

_BUILDER_CLASSES: dict[CodePattern, type[TraceBuilder]] = {
    CodePattern.FACTORIAL: FactorialTraceBuilder,
    CodePattern.FIBONACCI: FibonacciTraceBuilder,
    CodePattern.MERGE_SORT: MergeSortTraceBuilder,
    CodePattern.GENERIC: GenericTraceBuilder,
}


def get_builder(pattern: CodePattern) -> TraceBuilder:
    """Instantiate the builder registered for *pattern*.

    Raises ``ValueError`` if *pattern* has no registered builder.
    """
    cls = _BUILDER_CLASSES.get(pattern)
    if cls is None:
        raise ValueError(f"No trace builder registered for pattern: {pattern}")
    return cls()


def build_generic_trace(source: str) -> ExecutionTrace:
    return GenericTraceBuilder().build(source)


def build_trace(pattern: CodePattern, source: str) -> ExecutionTrace:
    """Build the canned trace for *pattern*; never raises.

    A fault inside a specialised builder degrades to the generic
    line-by-line trace.
    """
    builder = get_builder(pattern)
    try:
        return builder.build(source)
    except Exception:
        logger.warning(
            "%s failed, falling back to generic trace",
            type(builder).__name__,
            exc_info=True,
        )
        return build_generic_trace(source)


SUPPORTED_PATTERNS: tuple[CodePattern, ...] = tuple(_BUILDER_CLASSES.keys())

__all__ = [
    "TraceBuilder",
    "GenericTraceBuilder",
    "FactorialTraceBuilder",
    "FibonacciTraceBuilder",
    "MergeSortTraceBuilder",
    "build_trace",
    "build_generic_trace",
    "get_builder",
    "SUPPORTED_PATTERNS",
]
