"""Merge-sort builder — a representative (not exhaustive) divide-and-conquer trace."""

from __future__ import annotations

import re

from ._base import TraceBuilder
from ..extractors import extract_int_array, find_line, find_line_matching
from ..patterns import CodePattern
from .. import constants

_MERGE_SORT_NAME = re.compile(r"\b(merge_?sort)\b", re.IGNORECASE)


def _format_list(values: list[int]) -> str:
    return " ".join(str(v) for v in values)


class MergeSortTraceBuilder(TraceBuilder):
    """Entry, original print, top-level call, first left descent, one merge,
    sorted print.

    Large arrays are not enumerated merge by merge; the trace only shows the
    shape of the algorithm.
    """

    PATTERN = CodePattern.MERGE_SORT.value

    def _build(self) -> None:
        array_name, values = extract_int_array(
            self._source, constants.DEFAULT_ARRAY_NAME, constants.DEFAULT_SORT_ARRAY
        )
        name_match = _MERGE_SORT_NAME.search(self._source)
        sort_name = name_match.group(1) if name_match else constants.DEFAULT_MERGE_SORT_NAME
        printer = constants.DEFAULT_PRINT_LIST_NAME

        last = len(self._lines)
        entry_line = find_line(self._lines, "__main__", find_line(self._lines, f"{array_name} =", 0))
        given_line = find_line(self._lines, "Given array", entry_line + 1, start=entry_line)
        first_print_list = find_line(self._lines, f"{printer}(", given_line + 1, start=given_line + 1)
        top_call = find_line_matching(
            self._lines,
            rf"^\s*{re.escape(sort_name)}\s*\(\s*{re.escape(array_name)}",
            first_print_list + 1,
            start=entry_line,
        )
        descent_line = find_line(self._lines, f"{sort_name}({array_name}, left, mid", last)
        merge_line = find_line_matching(
            self._lines,
            rf"^\s*{constants.DEFAULT_MERGE_NAME}\s*\(\s*{re.escape(array_name)}",
            last + 1,
        )
        sorted_line = find_line(self._lines, "Sorted array", top_call + 1, start=top_call)
        final_print_list = find_line(self._lines, f"{printer}(", sorted_line + 1, start=sorted_line + 1)

        right = len(values) - 1
        self._emit(
            entry_line,
            variables={array_name: list(values)},
            fallback_code='if __name__ == "__main__":',
            explanation="Program execution starts here",
        )

        self._print("Given array is")
        self._emit(
            given_line,
            variables={array_name: list(values)},
            fallback_code='print("Given array is")',
            explanation="Print a message before showing the original array",
        )

        self._push_frame(f"{printer}({array_name})")
        self._print(_format_list(values))
        self._emit(
            first_print_list,
            variables={array_name: list(values)},
            fallback_code=f"{printer}({array_name})",
            explanation="Display the original array",
        )
        self._pop_frame()

        self._push_frame(f"{sort_name}({array_name}, 0, {right})")
        self._emit(
            top_call,
            variables={array_name: list(values), "left": 0, "right": right},
            fallback_code=f"{sort_name}({array_name}, 0, len({array_name}) - 1)",
            explanation="Start merge sort on the full array",
        )

        if len(values) >= 2:
            mid = right // 2
            self._push_frame(f"{sort_name}({array_name}, 0, {mid})")
            self._emit(
                descent_line,
                variables={array_name: list(values), "left": 0, "mid": mid, "right": right},
                fallback_code=f"{sort_name}({array_name}, left, mid)",
                explanation="Recursively sort the left half of the array",
            )

            sub_mid = mid // 2
            merged = sorted(values[: mid + 1]) + list(values[mid + 1 :])
            self._push_frame(f"{constants.DEFAULT_MERGE_NAME}({array_name}, 0, {sub_mid}, {mid})")
            self._emit(
                merge_line,
                variables={array_name: merged, "left": 0, "mid": sub_mid, "right": mid},
                fallback_code=f"{constants.DEFAULT_MERGE_NAME}({array_name}, left, mid, right)",
                explanation="Merge two sorted subarrays of the left half",
            )
            self._pop_frame()
            self._pop_frame()
        self._pop_frame()

        ordered = sorted(values)
        self._print("\nSorted array is")
        self._emit(
            sorted_line,
            variables={array_name: ordered},
            fallback_code='print("\\nSorted array is")',
            explanation="Print a message before showing the sorted array",
        )

        self._push_frame(f"{printer}({array_name})")
        self._print(_format_list(ordered))
        self._emit(
            final_print_list,
            variables={array_name: ordered},
            fallback_code=f"{printer}({array_name})",
            explanation="Display the sorted array",
        )
        self._pop_frame()
