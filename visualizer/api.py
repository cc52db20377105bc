"""Composable API functions for the trace visualizer.

Each function corresponds to a CLI workflow (trace, --analyze, --explain,
--ask) but is callable programmatically without argparse.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .insight_types import CodeAnalysis, CodeAnswer, CodeExplanation
from .patterns import classify_pattern
from .remote import OfflineRemoteService, RemoteService, get_remote_service
from .response_parser import resolve_analysis, resolve_answer, resolve_explanation
from .run_types import VisualizerConfig
from .session import TraceGenerator
from .trace_types import ExecutionTrace
from . import constants

logger = logging.getLogger(__name__)


def remote_service_from_config(
    config: VisualizerConfig, client: Any = None
) -> RemoteService:
    """Build the remote service described by *config*."""
    return get_remote_service(
        provider=config.provider,
        model=config.model,
        credential_present=config.credential_present,
        client=client,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )


def _service(remote: Optional[RemoteService]) -> RemoteService:
    return remote if remote is not None else OfflineRemoteService()


def generate_trace(
    source: str,
    language: str = "python",
    remote: Optional[RemoteService] = None,
) -> ExecutionTrace:
    """Synthesize an execution trace for *source*.

    Args:
        source: The source code text.
        language: Source language name (advisory).
        remote: Remote service; offline when omitted.

    Returns:
        An immutable trace; empty only for blank source.
    """
    return TraceGenerator(_service(remote), language).generate(source)


def analyze_code(
    source: str,
    language: str = "python",
    remote: Optional[RemoteService] = None,
) -> CodeAnalysis:
    """Complexity analysis and suggestions, remote first, canned otherwise."""
    service = _service(remote)
    pattern = classify_pattern(source, language)
    reply = service.analyze(source, language) if service.has_credential() else None
    return resolve_analysis(reply, source, pattern).value


def explain_code(
    source: str,
    language: str = "python",
    remote: Optional[RemoteService] = None,
) -> CodeExplanation:
    """Summary plus line-by-line explanation, remote first, canned otherwise."""
    service = _service(remote)
    pattern = classify_pattern(source, language)
    reply = service.explain(source, language) if service.has_credential() else None
    return resolve_explanation(reply, source, pattern).value


def answer_question(
    source: str,
    question: str,
    language: str = "python",
    remote: Optional[RemoteService] = None,
) -> CodeAnswer:
    """Answer a free-form question about *source*; never raises."""
    service = _service(remote)
    credential = service.has_credential()
    reply = None
    if credential and question.strip():
        reply = service.answer(source, language, question)
    return resolve_answer(
        reply,
        source,
        question,
        credential_present=credential,
        pattern=classify_pattern(source, language),
    )


def trace_to_json(trace: ExecutionTrace, indent: Optional[int] = 2) -> str:
    """Serialize *trace* in the wire shape (``{"executionTrace": [...]}``)."""
    return json.dumps({constants.TRACE_KEY: trace.to_dicts()}, indent=indent)


def dump_trace(trace: ExecutionTrace) -> str:
    """Human-readable dump of every step in *trace*."""
    if trace.is_empty:
        return "(empty trace)"
    lines = [
        f"═══ Trace ({len(trace)} steps, origin={trace.origin.value}, "
        f"pattern={trace.pattern or '-'}) ═══"
    ]
    for index, step in enumerate(trace):
        lines.append(f"[{index}] line {step.line}: {step.code}")
        lines.append(f"    stack: {' > '.join(step.call_stack)}")
        if step.variables:
            rendered = ", ".join(f"{k}={v!r}" for k, v in step.variables.items())
            lines.append(f"    vars:  {rendered}")
        if step.explanation:
            lines.append(f"    note:  {step.explanation}")
    final_output = trace[len(trace) - 1].output
    if final_output:
        lines.append("═══ Output ═══")
        lines.append(final_output.rstrip("\n"))
    return "\n".join(lines)
