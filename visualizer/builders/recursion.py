"""Recursion-on-integer builders — factorial and fibonacci call/return trees."""

from __future__ import annotations

import re
from abc import abstractmethod
from typing import Any, Mapping

from ._base import TraceBuilder
from ..extractors import (
    extract_call_argument,
    extract_function_name,
    extract_parameter_name,
    find_call_site,
    find_line,
    find_line_matching,
)
from ..patterns import CodePattern
from .. import constants

_PRINT_CALL = re.compile(r"\b(?:print|console\.log|printf|System\.out\.println)\s*\((.*)\)")
_STRING_ARGS = re.compile(r"""f?(["'])(.*?)\1(?:\s*,\s*(\w+))?""")
_PLACEHOLDER = re.compile(r"\{(\w+)\}")
_PRINT_LINE = r"\b(?:print|console\.log|printf|System\.out\.print)"


def render_print(line_text: str, bindings: Mapping[str, Any], default: str) -> str:
    """Best-effort rendering of a print statement against known bindings.

    Handles ``print(f"... {name} ...")``, ``print("label", name)`` and
    ``print(name)``; anything else yields *default*.
    """
    match = _PRINT_CALL.search(line_text)
    if not match:
        return default
    args = match.group(1).strip()

    literal = _STRING_ARGS.fullmatch(args)
    if literal:
        rendered = _PLACEHOLDER.sub(
            lambda m: str(bindings.get(m.group(1), m.group(0))), literal.group(2)
        )
        if literal.group(3):
            rendered += " " + str(bindings.get(literal.group(3), literal.group(3)))
        return rendered

    if args in bindings:
        return str(bindings[args])
    return default


class RecursionTraceBuilder(TraceBuilder):
    """Synthesizes the full call/return tree of a single-integer recursion.

    The call stack depth at every step equals the recursion depth at that
    moment plus one for ``main``.
    """

    DEFAULT_NAME: str = ""
    MAX_ARGUMENT: int = constants.DEFAULT_DEMO_ARGUMENT
    RESULT_LABEL: str = ""

    def __init__(self):
        super().__init__()
        self._name = self.DEFAULT_NAME
        self._param = constants.DEFAULT_RECURSIVE_PARAM
        self._def_line = 0
        self._base_line = 1
        self._base_return_line = 2
        self._recursive_line = 3

    # ── source recognition ───────────────────────────────────────

    def _locate(self):
        self._name = extract_function_name(self._source, self.DEFAULT_NAME)
        self._param = extract_parameter_name(
            self._source, constants.DEFAULT_RECURSIVE_PARAM
        )
        call = rf"\b{re.escape(self._name)}\s*\("
        self._def_line = find_line_matching(self._lines, call, 0)
        self._base_line = find_line_matching(
            self._lines, r"\bif\b", self._def_line + 1, start=self._def_line + 1
        )
        self._base_return_line = find_line(
            self._lines, "return", self._base_line + 1, start=self._base_line
        )
        self._recursive_line = find_line_matching(
            self._lines, call, self._base_return_line + 1, start=self._def_line + 1
        )

    def _demo_argument(self) -> int:
        argument = extract_call_argument(
            self._source, self._name, constants.DEFAULT_DEMO_ARGUMENT
        )
        return argument if argument <= self.MAX_ARGUMENT else constants.DEFAULT_DEMO_ARGUMENT

    # ── trace synthesis ──────────────────────────────────────────

    def _build(self) -> None:
        self._locate()
        argument = self._demo_argument()
        call_site = find_call_site(self._lines, self._name, len(self._lines))
        result_var = self._result_variable(call_site)
        print_line = find_line_matching(
            self._lines, _PRINT_LINE, call_site + 1, start=call_site
        )

        self._emit(
            call_site,
            fallback_code=f"{result_var} = {self._name}({argument})",
            explanation=f"Program starts: call {self._name}({argument})",
        )

        value = self._call(argument)

        bindings = {result_var: value, constants.RETURN_VALUE_KEY: value}
        self._emit(
            call_site,
            variables=bindings,
            fallback_code=f"{result_var} = {self._name}({argument})",
            explanation=f"{self._name}({argument}) returned {value}, stored in {result_var}",
        )

        self._print(
            render_print(
                self._line_text(print_line),
                {result_var: value, self._param: argument},
                f"{self.RESULT_LABEL} of {argument} is {value}",
            )
        )
        self._emit(
            print_line,
            variables=bindings,
            fallback_code=f"print({result_var})",
            explanation="Print the result",
        )

    def _result_variable(self, call_site: int) -> str:
        match = re.search(
            rf"(\w+)\s*=\s*{re.escape(self._name)}\s*\(", self._line_text(call_site)
        )
        return match.group(1) if match else "result"

    def _call(self, n: int) -> int:
        frame = f"{self._name}({n})"
        self._push_frame(frame)
        self._emit(
            self._def_line,
            variables={self._param: n},
            fallback_code=f"def {self._name}({self._param}):",
            explanation=f"Enter {frame}",
        )
        self._emit(
            self._base_line,
            variables={self._param: n},
            fallback_code=f"if {self._param} <= 1:",
            explanation=f"Check base case: is {self._param} <= 1 for {self._param} = {n}?",
        )

        if n <= 1:
            value = self._base_value(n)
            self._emit(
                self._base_return_line,
                variables={self._param: n, constants.RETURN_VALUE_KEY: value},
                fallback_code=self._base_return_code(),
                explanation=f"Base case reached, {frame} returns {value}",
            )
        else:
            value = self._recurse(n)

        self._pop_frame()
        return value

    def _emit_recursive(self, n: int, variables: Mapping[str, Any], explanation: str):
        self._emit(
            self._recursive_line,
            variables={self._param: n, **variables},
            fallback_code=self._recursive_code(),
            explanation=explanation,
        )

    @abstractmethod
    def _base_value(self, n: int) -> int: ...

    @abstractmethod
    def _base_return_code(self) -> str: ...

    @abstractmethod
    def _recursive_code(self) -> str: ...

    @abstractmethod
    def _recurse(self, n: int) -> int: ...


class FactorialTraceBuilder(RecursionTraceBuilder):
    PATTERN = CodePattern.FACTORIAL.value
    DEFAULT_NAME = constants.DEFAULT_FACTORIAL_NAME
    MAX_ARGUMENT = constants.MAX_FACTORIAL_ARGUMENT
    RESULT_LABEL = "Factorial"

    def _base_value(self, n: int) -> int:
        return 1

    def _base_return_code(self) -> str:
        return "return 1"

    def _recursive_code(self) -> str:
        return f"return {self._param} * {self._name}({self._param} - 1)"

    def _recurse(self, n: int) -> int:
        inner = f"{self._name}({n - 1})"
        self._emit_recursive(n, {}, f"Recursive call {inner}")
        sub = self._call(n - 1)
        value = n * sub
        self._emit_recursive(
            n,
            {inner: sub, constants.RETURN_VALUE_KEY: value},
            f"{inner} returned {sub}; compute {n} * {sub} = {value} and return",
        )
        return value


class FibonacciTraceBuilder(RecursionTraceBuilder):
    PATTERN = CodePattern.FIBONACCI.value
    DEFAULT_NAME = constants.DEFAULT_FIBONACCI_NAME
    MAX_ARGUMENT = constants.MAX_FIBONACCI_ARGUMENT
    RESULT_LABEL = "Fibonacci"

    def _base_value(self, n: int) -> int:
        return n

    def _base_return_code(self) -> str:
        return f"return {self._param}"

    def _recursive_code(self) -> str:
        return f"return {self._name}({self._param} - 1) + {self._name}({self._param} - 2)"

    def _recurse(self, n: int) -> int:
        first = f"{self._name}({n - 1})"
        second = f"{self._name}({n - 2})"
        self._emit_recursive(n, {}, f"Recursive call {first}")
        a = self._call(n - 1)
        self._emit_recursive(
            n, {first: a}, f"{first} returned {a}; now call {second}"
        )
        b = self._call(n - 2)
        value = a + b
        self._emit_recursive(
            n,
            {first: a, second: b, constants.RETURN_VALUE_KEY: value},
            f"{second} returned {b}; return {a} + {b} = {value}",
        )
        return value
