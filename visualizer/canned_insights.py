"""Offline analyses, explanations and answers keyed by CodePattern.

These are the last stage of every insight request: used when no credential
is configured, when the remote call fails, or when its reply cannot be
parsed.
"""

from __future__ import annotations

from .insight_types import CodeAnalysis, CodeExplanation, Complexity, LineExplanation
from .patterns import CodePattern

GENERIC_EXPLANATION_LINE_LIMIT = 10

_ANALYSES: dict[CodePattern, CodeAnalysis] = {
    CodePattern.MERGE_SORT: CodeAnalysis(
        explanation=(
            "This code implements the merge sort algorithm, a divide-and-conquer "
            "sorting algorithm. It divides the array into halves, sorts each half "
            "recursively, and then merges the sorted halves back together."
        ),
        complexity=Complexity(time="O(n log n)", space="O(n)"),
        suggestions=[
            "Consider an in-place merge to reduce the extra space",
            "Switch to insertion sort for very small subarrays",
            "Add comments that explain the key steps of the merge",
        ],
    ),
    CodePattern.FIBONACCI: CodeAnalysis(
        explanation=(
            "This code computes Fibonacci numbers recursively. Each number is the "
            "sum of the two preceding ones, starting from 0 and 1."
        ),
        complexity=Complexity(time="O(2^n)", space="O(n)"),
        suggestions=[
            "Use memoization to avoid recomputing the same subproblems",
            "An iterative version runs in linear time and constant space",
            "Reject negative inputs explicitly",
        ],
    ),
    CodePattern.FACTORIAL: CodeAnalysis(
        explanation=(
            "This code computes a factorial recursively: n! is n multiplied by "
            "(n - 1)!, with 1 returned for n <= 1."
        ),
        complexity=Complexity(time="O(n)", space="O(n)"),
        suggestions=[
            "An iterative loop avoids growing the call stack",
            "Deep recursion can hit the interpreter's recursion limit for large n",
            "Reject negative inputs explicitly",
        ],
    ),
    CodePattern.GENERIC: CodeAnalysis(
        explanation=(
            "This code defines functions and executes operations. A more detailed "
            "analysis requires examining its specific logic and algorithms."
        ),
        complexity=Complexity(
            time="Varies based on input size and operations",
            space="Varies based on data structures used",
        ),
        suggestions=[
            "Add comments that explain the purpose of each function",
            "Handle edge cases and invalid input explicitly",
            "Review variable names for clarity and consistency",
        ],
    ),
}

_MERGE_SORT_LINES: tuple[tuple[str, str], ...] = (
    ("def merge(arr, left, mid, right):", "Defines merge, which combines two sorted subarrays."),
    ("n1 = mid - left + 1", "Size of the left subarray."),
    ("n2 = right - mid", "Size of the right subarray."),
    ("L = [0] * n1", "Temporary buffer for the left subarray."),
    ("R = [0] * n2", "Temporary buffer for the right subarray."),
    ("def merge_sort(arr, left, right):", "Defines the recursive sorting function."),
    ("if left < right:", "Only ranges with at least two elements need sorting."),
    ("mid = (left + right) // 2", "Middle index that splits the range in two."),
)

_FIBONACCI_LINES: tuple[tuple[str, str], ...] = (
    ("def fib(n):", "Defines the recursive Fibonacci function."),
    ("if n <= 1:", "Base case: fib(0) is 0 and fib(1) is 1."),
    ("return n", "Returns n for the base case."),
    ("return fib(n - 1) + fib(n - 2)", "Sums the two preceding Fibonacci numbers."),
)

_FACTORIAL_LINES: tuple[tuple[str, str], ...] = (
    ("def calculate_factorial(n):", "Defines a recursive factorial function."),
    ("if n <= 1:", "Base case: the factorial of 0 and 1 is 1."),
    ("return 1", "Returns 1 for the base case."),
    ("return n * calculate_factorial(n - 1)", "Multiplies n by the factorial of n - 1."),
)

_SUMMARIES: dict[CodePattern, tuple[str, tuple[tuple[str, str], ...]]] = {
    CodePattern.MERGE_SORT: (
        "This code implements merge sort: it divides the array, sorts the halves, "
        "and merges them back together.",
        _MERGE_SORT_LINES,
    ),
    CodePattern.FIBONACCI: (
        "This code calculates Fibonacci numbers recursively; each number is the "
        "sum of the two preceding ones.",
        _FIBONACCI_LINES,
    ),
    CodePattern.FACTORIAL: (
        "This code calculates a factorial recursively, multiplying n by the "
        "factorial of n - 1 until it reaches the base case.",
        _FACTORIAL_LINES,
    ),
}

# (pattern, keyword, answer); the first matching keyword for the pattern wins,
# then the pattern-independent rows (pattern None) are tried.
_ANSWERS: tuple[tuple[CodePattern | None, str, str], ...] = (
    (
        CodePattern.MERGE_SORT,
        "time complexity",
        "Merge sort runs in O(n log n) time in the best, average and worst case: "
        "the array is halved log n times and each level does O(n) merging work.",
    ),
    (
        CodePattern.MERGE_SORT,
        "space complexity",
        "This merge sort uses O(n) extra space for the temporary L and R arrays. "
        "The recursion adds O(log n) stack frames, which the buffers dominate.",
    ),
    (
        CodePattern.MERGE_SORT,
        "how",
        "Merge sort splits the array in two, recursively sorts each half, then "
        "merges the sorted halves by repeatedly taking the smaller front element.",
    ),
    (
        CodePattern.FIBONACCI,
        "recursive",
        "Yes. The function calls itself for n - 1 and n - 2 until it reaches the "
        "base case n <= 1, so the number of calls grows exponentially.",
    ),
    (
        CodePattern.FIBONACCI,
        "time complexity",
        "The naive recursive Fibonacci runs in O(2^n) time because each call "
        "spawns two more calls that recompute the same values.",
    ),
    (
        CodePattern.FIBONACCI,
        "improve",
        "Cache results with memoization, or iterate with two running variables, "
        "to bring the time down to O(n).",
    ),
    (
        CodePattern.FACTORIAL,
        "recursive",
        "Yes. The function calls itself with n - 1 until it reaches the base case "
        "n <= 1. Each pending call sits on the call stack, which limits how large "
        "n can get.",
    ),
    (
        CodePattern.FACTORIAL,
        "time complexity",
        "The recursive factorial makes n calls that each do constant work, so it "
        "runs in O(n) time and uses O(n) stack space.",
    ),
    (
        CodePattern.FACTORIAL,
        "improve",
        "Use a loop, or the standard library's factorial, to avoid deep recursion "
        "and the stack overflow it risks for large inputs.",
    ),
    (
        None,
        "what does this code do",
        "This code defines functions and executes operations that implement an "
        "algorithm. A more specific answer needs a closer look at its logic.",
    ),
    (
        None,
        "how can i improve",
        "Add comments for non-obvious steps, handle edge cases explicitly, "
        "optimise the hot paths, and follow the language's naming conventions.",
    ),
    (
        None,
        "bug",
        "Common problems to check for are off-by-one errors in loops, wrong "
        "boundary conditions, unhandled edge cases and null references. Running "
        "the code on varied inputs is the quickest way to find them.",
    ),
    (
        None,
        "error",
        "Common problems to check for are off-by-one errors in loops, wrong "
        "boundary conditions, unhandled edge cases and null references. Running "
        "the code on varied inputs is the quickest way to find them.",
    ),
)


def canned_analysis(pattern: CodePattern) -> CodeAnalysis:
    return _ANALYSES.get(pattern, _ANALYSES[CodePattern.GENERIC]).model_copy(deep=True)


def canned_explanation(pattern: CodePattern, source: str) -> CodeExplanation:
    """Canned explanation for *pattern*; generic code gets a per-line outline."""
    if pattern in _SUMMARIES:
        summary, lines = _SUMMARIES[pattern]
        return CodeExplanation(
            summary=summary,
            line_by_line=[
                LineExplanation(line=i + 1, code=code, explanation=text)
                for i, (code, text) in enumerate(lines)
            ],
        )

    source_lines = source.split("\n")[:GENERIC_EXPLANATION_LINE_LIMIT]
    return CodeExplanation(
        summary=_ANALYSES[CodePattern.GENERIC].explanation,
        line_by_line=[
            LineExplanation(
                line=i + 1,
                code=line.strip() or "(empty line)",
                explanation=(
                    "This line contains code that contributes to the program's behaviour."
                    if line.strip()
                    else "This line is empty or contains only whitespace."
                ),
            )
            for i, line in enumerate(source_lines)
        ],
    )


def canned_answer(pattern: CodePattern, question: str) -> str | None:
    """Offline answer for *question*, or None when nothing matches."""
    lowered = question.lower()
    for row_pattern, keyword, answer in _ANSWERS:
        if row_pattern is not None and row_pattern != pattern:
            continue
        if keyword in lowered:
            return answer
    return None
