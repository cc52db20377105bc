"""Tests for visualizer.patterns — classification priority and totality."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from visualizer.patterns import CodePattern, classify_pattern, matching_rule


class TestClassifyPattern:
    @pytest.mark.parametrize(
        "source, expected",
        [
            ("def merge_sort(arr, l, r): pass", CodePattern.MERGE_SORT),
            ("// MergeSort implementation", CodePattern.MERGE_SORT),
            ("# merge sort", CodePattern.MERGE_SORT),
            ("def quicksort(a): pass", CodePattern.GENERIC),
            ("function bubble_sort(a) {}", CodePattern.GENERIC),
            ("def calculate_factorial(n): pass", CodePattern.FACTORIAL),
            ("int Factorial(int n) { return 1; }", CodePattern.FACTORIAL),
            ("def fibonacci(n): pass", CodePattern.FIBONACCI),
            ("x = fib(10)", CodePattern.FIBONACCI),
            ("x = 1\nprint(x)", CodePattern.GENERIC),
            ("", CodePattern.GENERIC),
        ],
    )
    def test_examples(self, source, expected):
        assert classify_pattern(source) == expected

    def test_structural_fibonacci_is_whitespace_insensitive(self):
        source = "def g(n):\n    if n < 2:\n        return n\n    return g(n - 1) + g(n - 2)\n"
        assert classify_pattern(source) == CodePattern.FIBONACCI

    def test_structural_fibonacci_needs_return(self):
        assert classify_pattern("a = n-1\nb = n-2") == CodePattern.GENERIC

    def test_spaced_fib_call_with_return(self):
        source = "def fib (k):\n    if k < 2:\n        return k\n    return fib (k - 1) + fib (k - 2)\n"
        assert classify_pattern(source) == CodePattern.FIBONACCI
        assert matching_rule(source).name == "fibonacci (spaced call)"

    def test_spaced_fib_needs_return(self):
        assert classify_pattern("x = fib 3") == CodePattern.GENERIC

    def test_merge_sort_beats_factorial(self):
        source = "def factorial(n): pass\ndef merge_sort(a): pass"
        assert classify_pattern(source) == CodePattern.MERGE_SORT

    def test_quick_sort_beats_recursion_heuristics(self):
        source = "def quick_sort(n):\n    return quick_sort(n-1) + quick_sort(n-2)"
        assert classify_pattern(source) == CodePattern.GENERIC
        assert matching_rule(source).name == "quick sort"

    def test_factorial_beats_fibonacci(self):
        source = "# factorial vs fibonacci\n"
        assert classify_pattern(source) == CodePattern.FACTORIAL

    def test_language_is_advisory(self):
        source = "def calculate_factorial(n): pass"
        assert classify_pattern(source, "python") == classify_pattern(source, "java")

    def test_no_rule_for_plain_code(self):
        assert matching_rule("x = 1") is None


class TestClassifyPatternProperties:
    @given(source=st.text(max_size=300), language=st.sampled_from(["", "python", "c"]))
    @settings(max_examples=200)
    def test_total_and_idempotent(self, source, language):
        first = classify_pattern(source, language)
        assert isinstance(first, CodePattern)
        assert classify_pattern(source, language) == first

    @given(prefix=st.text(max_size=50), suffix=st.text(max_size=50))
    def test_merge_sort_keyword_always_wins(self, prefix, suffix):
        assert classify_pattern(prefix + " merge_sort " + suffix) == CodePattern.MERGE_SORT
