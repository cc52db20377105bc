"""Layered extraction of traces and insights from untrusted remote replies.

Every strategy is a pure ``text -> ParseResult`` function; ``first_success``
runs them in order. The ``resolve_*`` entry points add the final fallback
(deterministic builder or canned insight) and never raise.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .builders import build_trace
from .canned_insights import canned_analysis, canned_answer, canned_explanation
from .insight_types import AnswerOrigin, CodeAnalysis, CodeAnswer, CodeExplanation
from .patterns import CodePattern, classify_pattern
from .remote import RemoteReply
from .trace_types import ExecutionStep, ExecutionTrace, TraceOrigin
from . import constants

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGE_DIRECT = "direct"
STAGE_DIRECT_ALTERNATE = "direct-alternate"
STAGE_EMBEDDED = "embedded"
STAGE_EMBEDDED_ALTERNATE = "embedded-alternate"
STAGE_REPAIRED = "repaired"
STAGE_REPAIRED_ALTERNATE = "repaired-alternate"
STAGE_PLAIN_TEXT = "plain-text"
STAGE_FALLBACK = "fallback"
STAGE_NONE = "none"


class TraceParsingError(Exception):
    """Raised by ``parse_trace_strict`` when no stage yields a trace."""

    pass


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Outcome of one parsing strategy: a value, or the reason it failed."""

    ok: bool
    value: Optional[T] = None
    stage: str = ""
    reason: str = ""

    @classmethod
    def success(cls, value: T, stage: str) -> ParseResult[T]:
        return cls(ok=True, value=value, stage=stage)

    @classmethod
    def failure(cls, stage: str, reason: str) -> ParseResult[T]:
        return cls(ok=False, stage=stage, reason=reason)


Strategy = Callable[[str], ParseResult[T]]


def first_success(strategies: Sequence[Strategy], text: str) -> ParseResult:
    """Run *strategies* in order and return the first successful result."""
    failures: list[str] = []
    for strategy in strategies:
        result = strategy(text)
        if result.ok:
            logger.info("Parsed remote reply at stage %s", result.stage)
            return result
        logger.debug("Stage %s failed: %s", result.stage, result.reason)
        failures.append(f"{result.stage}: {result.reason}")
    return ParseResult.failure(STAGE_NONE, "; ".join(failures) or "no strategies")


# ── JSON location ────────────────────────────────────────────────

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCED_ANY = re.compile(r"```[\w+-]*[ \t]*\n?([\s\S]*?)\s*```")


def _strip_markdown_fences(text: str) -> str:
    """Remove a markdown code fence wrapping the whole reply."""
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1 :] if first_newline != -1 else text[3:]
    if text.endswith("```"):
        text = text[: text.rfind("```")]
    return text.strip()


def _balanced_object_end(text: str, start: int) -> int:
    """Index just past the ``}`` closing the object opened at *start*, or -1."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return -1


def extract_json_candidate(text: str) -> str | None:
    """Locate the first JSON object embedded in prose.

    Preference order: a fenced block labelled ``json``, any fenced block
    that opens with a brace, the first balanced top-level ``{...}`` span,
    then the greedy span from the first ``{`` to the last ``}``.
    """
    fenced = _FENCED_JSON.search(text)
    if fenced and fenced.group(1).strip():
        return fenced.group(1).strip()

    for match in _FENCED_ANY.finditer(text):
        body = match.group(1).strip()
        if body.startswith("{"):
            return body

    start = text.find("{")
    if start == -1:
        return None
    end = _balanced_object_end(text, start)
    if end != -1:
        return text[start:end]
    last = text.rfind("}")
    return text[start : last + 1] if last > start else text[start:]


def _closers_for(text: str) -> str:
    """Closing brackets needed to balance *text*, innermost first."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()
    return "".join(reversed(stack))


def _repair_json(text: str) -> str:
    """Attempt to repair common JSON issues from smaller models.

    Fixes: JS-style // comments, trailing commas before ] or }, and
    truncated responses (cut back to the last complete object, then the
    open brackets are closed).
    """
    text = re.sub(r"(?m)^\s*//[^\n]*", "", text)
    text = re.sub(r",\s*([}\]])", r"\1", text)

    closers = _closers_for(text)
    if closers:
        logger.warning("JSON appears truncated, closing %d open brackets", len(closers))
        last_brace = text.rfind("}")
        if last_brace > 0:
            text = text[: last_brace + 1]
        text = re.sub(r",\s*$", "", text) + _closers_for(text)
    return text


def _whole_body(text: str) -> str | None:
    stripped = text.strip()
    return stripped or None


def _embedded_body(text: str) -> str | None:
    return extract_json_candidate(text)


def _repaired_body(text: str) -> str | None:
    candidate = extract_json_candidate(text)
    if candidate is None:
        candidate = _strip_markdown_fences(text)
        if not candidate.startswith(("{", "[")):
            return None
    repaired = _repair_json(candidate)
    return repaired if repaired != candidate else None


Selector = Callable[[Any], Optional[T]]


def _json_strategy(
    stage: str, locate: Callable[[str], str | None], select: Selector
) -> Strategy:
    def strategy(text: str) -> ParseResult:
        candidate = locate(text)
        if candidate is None:
            return ParseResult.failure(stage, "no JSON candidate")
        try:
            data = json.loads(candidate)
        except (ValueError, RecursionError) as exc:
            return ParseResult.failure(stage, f"invalid JSON: {exc}")
        try:
            value = select(data)
        except ValidationError as exc:
            return ParseResult.failure(stage, f"invalid shape ({exc.error_count()} errors)")
        except (ValueError, TypeError) as exc:
            return ParseResult.failure(stage, f"invalid shape: {exc}")
        if value is None:
            return ParseResult.failure(stage, "expected keys missing")
        return ParseResult.success(value, stage)

    return strategy


def _layered_strategies(primary: Selector, alternate: Selector) -> list[Strategy]:
    return [
        _json_strategy(STAGE_DIRECT, _whole_body, primary),
        _json_strategy(STAGE_DIRECT_ALTERNATE, _whole_body, alternate),
        _json_strategy(STAGE_EMBEDDED, _embedded_body, primary),
        _json_strategy(STAGE_EMBEDDED_ALTERNATE, _embedded_body, alternate),
        _json_strategy(STAGE_REPAIRED, _repaired_body, primary),
        _json_strategy(STAGE_REPAIRED_ALTERNATE, _repaired_body, alternate),
    ]


# ── Trace shape ──────────────────────────────────────────────────


class RemoteStep(BaseModel):
    """One step as the remote model describes it, coerced leniently."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    line: int = 0
    code: str = ""
    variables: dict[str, Any] = Field(default_factory=dict)
    call_stack: list[str] = Field(default_factory=list, alias="callStack")
    output: str = ""
    explanation: Optional[str] = None

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value):
        if isinstance(value, bool):
            return 0
        if isinstance(value, int):
            return max(value, 0)
        if isinstance(value, float):
            return max(int(value), 0) if math.isfinite(value) else 0
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return max(int(value.strip()), 0)
        return 0

    @field_validator("code", "output", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return "" if value is None else str(value)

    @field_validator("variables", mode="before")
    @classmethod
    def _coerce_variables(cls, value):
        return value if isinstance(value, dict) else {}

    @field_validator("call_stack", mode="before")
    @classmethod
    def _coerce_call_stack(cls, value):
        if isinstance(value, str):
            return [value] if value else []
        if not isinstance(value, list):
            return []
        return [str(frame) for frame in value if frame is not None]

    @field_validator("explanation", mode="before")
    @classmethod
    def _coerce_explanation(cls, value):
        return None if value is None else str(value)


def _accumulate(previous: str, output: str) -> str:
    """Fold per-step output into cumulative output."""
    if output.startswith(previous):
        return output
    if previous and output and not previous.endswith("\n"):
        return previous + "\n" + output
    return previous + output


def _steps_to_trace(raw_steps: list[Any]) -> ExecutionTrace | None:
    steps: list[ExecutionStep] = []
    output = ""
    for index, raw in enumerate(raw_steps):
        if not isinstance(raw, dict):
            logger.debug("Skipping non-object step #%d", index)
            continue
        try:
            remote = RemoteStep.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed step #%d", index, exc_info=True)
            continue
        output = _accumulate(output, remote.output)
        steps.append(
            ExecutionStep(
                line=remote.line,
                code=remote.code,
                variables=remote.variables,
                call_stack=remote.call_stack or [constants.MAIN_FRAME_NAME],
                output=output,
                explanation=remote.explanation,
            )
        )
    if not steps:
        return None
    return ExecutionTrace(steps=tuple(steps), origin=TraceOrigin.REMOTE)


def _primary_trace(data: Any) -> ExecutionTrace | None:
    if isinstance(data, dict) and isinstance(data.get(constants.TRACE_KEY), list):
        return _steps_to_trace(data[constants.TRACE_KEY])
    return None


def _alternate_trace(data: Any) -> ExecutionTrace | None:
    if isinstance(data, list):
        return _steps_to_trace(data)
    if not isinstance(data, dict):
        return None
    for key in constants.ALTERNATE_TRACE_KEYS:
        if isinstance(data.get(key), list):
            return _steps_to_trace(data[key])
    return None


# ── Insight shapes ───────────────────────────────────────────────


def _primary_analysis(data: Any) -> CodeAnalysis | None:
    if isinstance(data, dict) and data.get("explanation") and data.get("complexity"):
        return CodeAnalysis.model_validate(data)
    return None


def _alternate_analysis(data: Any) -> CodeAnalysis | None:
    if isinstance(data, dict):
        return _primary_analysis(data.get(constants.ANALYSIS_NESTED_KEY))
    return None


def _primary_explanation(data: Any) -> CodeExplanation | None:
    if isinstance(data, dict) and (
        data.get("summary") or data.get("lineByLineExplanation")
    ):
        return CodeExplanation.model_validate(data)
    return None


def _alternate_explanation(data: Any) -> CodeExplanation | None:
    if isinstance(data, dict) and isinstance(data.get("explanation"), str):
        return CodeExplanation(summary=data["explanation"])
    return None


def _primary_answer(data: Any) -> str | None:
    if isinstance(data, dict) and isinstance(data.get(constants.ANSWER_KEY), str):
        return data[constants.ANSWER_KEY].strip() or None
    return None


def _alternate_answer(data: Any) -> str | None:
    if isinstance(data, dict) and isinstance(data.get("response"), str):
        return data["response"].strip() or None
    return None


def _plain_text_answer(text: str) -> ParseResult[str]:
    stripped = text.strip()
    if not stripped:
        return ParseResult.failure(STAGE_PLAIN_TEXT, "empty reply")
    return ParseResult.success(stripped, STAGE_PLAIN_TEXT)


_TRACE_STRATEGIES = _layered_strategies(_primary_trace, _alternate_trace)
_ANALYSIS_STRATEGIES = _layered_strategies(_primary_analysis, _alternate_analysis)
_EXPLANATION_STRATEGIES = _layered_strategies(
    _primary_explanation, _alternate_explanation
)
_ANSWER_STRATEGIES = _layered_strategies(_primary_answer, _alternate_answer)[:4] + [
    _plain_text_answer
]


def parse_trace(text: str) -> ParseResult[ExecutionTrace]:
    return first_success(_TRACE_STRATEGIES, text or "")


def parse_analysis(text: str) -> ParseResult[CodeAnalysis]:
    return first_success(_ANALYSIS_STRATEGIES, text or "")


def parse_explanation(text: str) -> ParseResult[CodeExplanation]:
    return first_success(_EXPLANATION_STRATEGIES, text or "")


def parse_answer(text: str) -> ParseResult[str]:
    return first_success(_ANSWER_STRATEGIES, text or "")


def parse_trace_strict(text: str) -> ExecutionTrace:
    """Parse a trace reply or raise ``TraceParsingError``."""
    result = parse_trace(text)
    if not result.ok:
        logger.error("Trace parsing failed. Raw reply:\n%s", (text or "")[:2000])
        raise TraceParsingError(f"Failed to parse trace reply: {result.reason}")
    return result.value


# ── Resolution with fallback ─────────────────────────────────────


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """A value that is always present, tagged with the stage that produced it."""

    value: T
    stage: str
    used_fallback: bool = False


def _reply_problem(reply: RemoteReply | None) -> str | None:
    if reply is None:
        return "no remote reply"
    if not reply.ok:
        return f"remote call failed (status={reply.status})"
    if not reply.text.strip():
        return "empty reply body"
    return None


def _resolve(
    reply: RemoteReply | None,
    parse: Callable[[str], ParseResult[T]],
    fallback: Callable[[], T],
    kind: str,
) -> Resolved[T]:
    reason = _reply_problem(reply)
    if reason is None:
        result = parse(reply.text)
        if result.ok:
            return Resolved(result.value, result.stage)
        reason = result.reason
    logger.warning("Using fallback %s: %s", kind, reason)
    return Resolved(fallback(), STAGE_FALLBACK, used_fallback=True)


def resolve_trace(
    reply: RemoteReply | None,
    source: str,
    pattern: CodePattern | None = None,
) -> Resolved[ExecutionTrace]:
    """Parsed remote trace, or the deterministic trace for *source*."""
    chosen = pattern or classify_pattern(source)

    def fallback() -> ExecutionTrace:
        return replace(build_trace(chosen, source), origin=TraceOrigin.FALLBACK)

    return _resolve(reply, parse_trace, fallback, "trace")


def resolve_analysis(
    reply: RemoteReply | None, source: str, pattern: CodePattern | None = None
) -> Resolved[CodeAnalysis]:
    chosen = pattern or classify_pattern(source)
    return _resolve(reply, parse_analysis, lambda: canned_analysis(chosen), "analysis")


def resolve_explanation(
    reply: RemoteReply | None, source: str, pattern: CodePattern | None = None
) -> Resolved[CodeExplanation]:
    chosen = pattern or classify_pattern(source)
    return _resolve(
        reply,
        parse_explanation,
        lambda: canned_explanation(chosen, source),
        "explanation",
    )


def resolve_answer(
    reply: RemoteReply | None,
    source: str,
    question: str,
    credential_present: bool,
    pattern: CodePattern | None = None,
) -> CodeAnswer:
    """Remote answer, else a canned one, else a descriptive message."""
    if not question.strip():
        return CodeAnswer(
            question=question,
            answer=constants.EMPTY_QUESTION_MESSAGE,
            origin=AnswerOrigin.UNAVAILABLE,
        )

    reason = _reply_problem(reply) if credential_present else "no credential"
    if reason is None:
        result = parse_answer(reply.text)
        if result.ok:
            return CodeAnswer(
                question=question, answer=result.value, origin=AnswerOrigin.REMOTE
            )
        reason = result.reason

    chosen = pattern or classify_pattern(source)
    canned = canned_answer(chosen, question)
    if canned is not None:
        logger.info("Answering from canned insights (%s)", reason)
        return CodeAnswer(question=question, answer=canned, origin=AnswerOrigin.CANNED)

    logger.warning("No answer available: %s", reason)
    message = (
        constants.REMOTE_UNAVAILABLE_MESSAGE
        if credential_present
        else constants.NO_CREDENTIAL_MESSAGE
    )
    return CodeAnswer(question=question, answer=message, origin=AnswerOrigin.UNAVAILABLE)
