"""Source recognizers — pull names, literals and line positions out of raw text.

Every function here is pure and total: when a pattern does not match, the
caller-supplied default comes back instead of an exception.
"""

from __future__ import annotations

import re

_FUNCTION_DEF_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bdef\s+(\w+)\s*\("),
    re.compile(r"\bfunction\s+(\w+)\s*\("),
    re.compile(r"\b(?:fn|func)\s+(\w+)\s*\("),
    re.compile(
        r"^\s*(?:(?:public|private|protected|static|final|unsigned|long|int|"
        r"void|double|float|const)\s+)+(\w+)\s*\(",
        re.MULTILINE,
    ),
)

_PARAM_PATTERN = re.compile(
    r"\(\s*(?:(?:int|long|unsigned|const|final|double)\s+)*(\w+)\s*(?::\s*[\w\[\], ]+)?\s*\)"
)

_ARRAY_LITERAL_PATTERN = re.compile(r"(\w+)\s*(?:\[\s*\])?\s*=\s*[\[{]([^\]}]*)[\]}]")

_KEYWORDS: frozenset[str] = frozenset(
    {"if", "while", "for", "return", "print", "switch", "elif", "and", "or", "not"}
)


def extract_function_name(source: str, default: str) -> str:
    """Name of the first function defined in *source*."""
    for pattern in _FUNCTION_DEF_PATTERNS:
        match = pattern.search(source)
        if match and match.group(1) not in _KEYWORDS:
            return match.group(1)
    return default


def extract_parameter_name(source: str, default: str) -> str:
    """Name of the first single-parameter list in *source* (``(n)``, ``(n: int)``, ``(int n)``)."""
    match = _PARAM_PATTERN.search(source)
    if match and match.group(1) not in _KEYWORDS and not match.group(1).isdigit():
        return match.group(1)
    return default


def extract_int_array(
    source: str, default_name: str, default_values: tuple[int, ...]
) -> tuple[str, list[int]]:
    """First integer list literal assigned to a name, as ``(name, values)``.

    ``arr = [3, 1, 2]``, ``let arr = [3, 1, 2]`` and ``int arr[] = {3, 1, 2}``
    all match. A literal bound to *default_name* wins; otherwise the first
    literal with at least two integers (so ``L = [0] * n1`` scratch buffers
    are passed over). Literals holding anything other than integers are
    skipped.
    """
    candidates: list[tuple[str, list[int]]] = []
    for match in _ARRAY_LITERAL_PATTERN.finditer(source):
        values = _parse_int_list(match.group(2))
        if values is None:
            continue
        if match.group(1) == default_name:
            return match.group(1), values
        candidates.append((match.group(1), values))
    return next(
        ((name, values) for name, values in candidates if len(values) >= 2),
        (default_name, list(default_values)),
    )


def _parse_int_list(body: str) -> list[int] | None:
    items = [item.strip() for item in body.split(",")]
    if items == [""]:
        return []
    try:
        return [int(item) for item in items if item]
    except ValueError:
        return None


def extract_call_argument(source: str, function_name: str, default: int) -> int:
    """Integer literal passed to the first ``function_name(<int>)`` call."""
    match = re.search(rf"\b{re.escape(function_name)}\s*\(\s*(\d+)\s*\)", source)
    if not match:
        return default
    try:
        return int(match.group(1))
    except ValueError:
        # Literal longer than the interpreter's int conversion limit.
        return default


def find_line(lines: list[str], needle: str, default: int, start: int = 0) -> int:
    """Zero-based index of the first line at or after *start* containing *needle*."""
    return next(
        (i for i in range(max(start, 0), len(lines)) if needle in lines[i]),
        default,
    )


def find_line_matching(
    lines: list[str], pattern: str, default: int, start: int = 0
) -> int:
    """Like :func:`find_line`, but with a regular expression."""
    compiled = re.compile(pattern)
    return next(
        (i for i in range(max(start, 0), len(lines)) if compiled.search(lines[i])),
        default,
    )


def find_call_site(lines: list[str], function_name: str, default: int) -> int:
    """First unindented line that calls *function_name* outside its definition."""
    call = re.compile(rf"\b{re.escape(function_name)}\s*\(")
    definition = re.compile(rf"\b(?:def|function|fn|func)\s+{re.escape(function_name)}\b")
    for i, line in enumerate(lines):
        if not call.search(line) or definition.search(line):
            continue
        if line[:1].isspace():
            continue
        return i
    return default
