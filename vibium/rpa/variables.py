"""``${...}`` interpolation and the small condition language used by ``if``.

Conditions are a single comparison (``==``, ``!=``, ``>=``, ``<=``, ``>``,
``<``), an optional leading ``!``, or a bare value tested for truthiness.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any

from ..errors import ExpressionError

_VAR = re.compile(r"\$\{([^}]+)\}")
_ENV = re.compile(r"^\s*env\.(.+?)\s*$")

OPERATORS = ("==", "!=", ">=", "<=", ">", "<")

_FALSY_STRINGS = frozenset({"", "false", "0", "null"})

_MISSING = object()


def stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def _parse_number(text: str) -> float | None:
    try:
        return float(text.strip())
    except ValueError:
        return None


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


class Resolver:
    """Variable store with dotted-path lookup and string interpolation."""

    def __init__(self, variables: dict[str, Any] | None = None) -> None:
        self._variables = variables if variables is not None else {}

    @property
    def variables(self) -> dict[str, Any]:
        return self._variables

    def set(self, name: str, value: Any) -> None:
        self._variables[name] = value

    def get(self, path: str) -> tuple[Any, bool]:
        """Look up ``a.b.0.c``; integer parts index into lists."""
        current: Any = self._variables
        for part in path.strip().split("."):
            if isinstance(current, dict):
                current = current.get(part, _MISSING)
            elif isinstance(current, list) and part.lstrip("-").isdigit():
                index = int(part)
                current = current[index] if -len(current) <= index < len(current) else _MISSING
            else:
                return None, False
            if current is _MISSING:
                return None, False
        return current, True

    def get_string(self, path: str) -> tuple[str, bool]:
        value, found = self.get(path)
        if not found:
            return "", False
        return stringify(value), True

    def resolve(self, text: str) -> str:
        """Replace each ``${expr}``; unknown references are left as written."""

        def replace(match: re.Match[str]) -> str:
            expr = match.group(1)
            env = _ENV.match(expr)
            if env is not None:
                return os.environ.get(env.group(1), "")
            value, found = self.get_string(expr)
            return value if found else match.group(0)

        return _VAR.sub(replace, text)

    def resolve_any(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.resolve(value)
        if isinstance(value, dict):
            return self.resolve_map(value)
        if isinstance(value, list):
            return [self.resolve_any(item) for item in value]
        return value

    def resolve_map(self, params: dict[str, Any]) -> dict[str, Any]:
        return {key: self.resolve_any(value) for key, value in params.items()}


class Evaluator:
    def __init__(self, resolver: Resolver) -> None:
        self.resolver = resolver

    def evaluate(self, expr: str) -> bool:
        expr = expr.strip()
        if "&&" in expr or "||" in expr:
            raise ExpressionError(f"logical operators are not supported: {expr}")

        if expr.startswith("!"):
            return not self.evaluate(expr[1:])

        for op in OPERATORS:
            idx = expr.find(op)
            if idx > 0:
                return self._compare(expr[:idx].strip(), op, expr[idx + len(op) :].strip())

        return is_truthy(self.resolver.resolve(expr))

    def _compare(self, left: str, op: str, right: str) -> bool:
        left_value = self.resolver.resolve(left)
        right_value = _unquote(self.resolver.resolve(right))

        left_num = _parse_number(left_value)
        right_num = _parse_number(right_value)
        if left_num is not None and right_num is not None:
            return {
                "==": left_num == right_num,
                "!=": left_num != right_num,
                ">": left_num > right_num,
                "<": left_num < right_num,
                ">=": left_num >= right_num,
                "<=": left_num <= right_num,
            }[op]

        if op == "==":
            return left_value == right_value
        if op == "!=":
            return left_value != right_value
        raise ExpressionError(f"cannot compare strings with operator {op}")
