"""Code-pattern classifier — picks a trace generation strategy from source text."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class CodePattern(str, Enum):
    FACTORIAL = "factorial-like-recursion"
    FIBONACCI = "fibonacci-like-recursion"
    MERGE_SORT = "merge-sort"
    GENERIC = "generic"


@dataclass(frozen=True)
class PatternRule:
    """One classifier branch.

    Matches when any ``any_of`` keyword is present, or when every
    ``all_of`` keyword is present in either the lower-cased source or its
    whitespace-free form.
    """

    name: str
    pattern: CodePattern
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()

    def matches(self, lowered: str, compact: str) -> bool:
        if any(keyword in lowered for keyword in self.any_of):
            return True
        if not self.all_of:
            return False
        return all(keyword in lowered for keyword in self.all_of) or all(
            keyword in compact for keyword in self.all_of
        )


# Order matters: the sort family is checked before the recursion family,
# and the first matching rule wins.
PATTERN_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        "merge sort",
        CodePattern.MERGE_SORT,
        any_of=("merge sort", "mergesort", "merge_sort"),
    ),
    PatternRule(
        "quick sort",
        CodePattern.GENERIC,
        any_of=("quick sort", "quicksort", "quick_sort"),
    ),
    PatternRule(
        "bubble sort",
        CodePattern.GENERIC,
        any_of=("bubble sort", "bubblesort", "bubble_sort"),
    ),
    PatternRule("factorial", CodePattern.FACTORIAL, any_of=("factorial",)),
    PatternRule(
        "fibonacci",
        CodePattern.FIBONACCI,
        any_of=("fibonacci", "fib("),
        all_of=("n-1", "n-2", "return"),
    ),
    PatternRule(
        "fibonacci (spaced call)",
        CodePattern.FIBONACCI,
        all_of=("fib ", "return"),
    ),
)

_WHITESPACE = re.compile(r"\s+")


def matching_rule(source: str) -> PatternRule | None:
    """Return the first rule that matches *source*, or None."""
    lowered = source.lower()
    compact = _WHITESPACE.sub("", lowered)
    return next((rule for rule in PATTERN_RULES if rule.matches(lowered, compact)), None)


def classify_pattern(source: str, language: str = "") -> CodePattern:
    """Classify *source* into exactly one CodePattern.

    *language* is advisory and does not influence the result.
    """
    rule = matching_rule(source)
    pattern = rule.pattern if rule else CodePattern.GENERIC
    logger.debug(
        "classify_pattern: %d chars (%s) -> %s via %s",
        len(source),
        language or "unknown",
        pattern.value,
        rule.name if rule else "default",
    )
    return pattern
