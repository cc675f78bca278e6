"""Comparison operators evaluated against live field values.

Equality is coercive: ``5`` equals ``"5"``. The conversions below spell out the
loose-typing rules stored business rules were written against.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import date
from typing import Any

from decisionflow.schemas.enums import ComparisonOperator

LOGGER = logging.getLogger(__name__)

_INFINITY_LITERALS = {"infinity": math.inf, "+infinity": math.inf, "-infinity": -math.inf}


def to_number(value: Any) -> float:
    """Numeric coercion; non-numeric input yields NaN."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return _string_to_number(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_number(to_text(value[0]) if value[0] is not None else "")
        return math.nan
    return math.nan


def to_text(value: Any) -> str:
    """String coercion used by ``contains`` and mixed-type equality."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else to_text(item) for item in value)
    if isinstance(value, Mapping):
        return "[object Object]"
    return str(value)


def loose_equals(actual: Any, expected: Any) -> bool:
    """Coercive equality: numbers compare numerically against numeric strings."""
    if actual is None or expected is None:
        return actual is None and expected is None
    if isinstance(actual, Mapping) or isinstance(expected, Mapping):
        return actual == expected
    actual_is_seq = isinstance(actual, (list, tuple))
    expected_is_seq = isinstance(expected, (list, tuple))
    if actual_is_seq and expected_is_seq:
        return list(actual) == list(expected)
    if actual_is_seq:
        return loose_equals(to_text(actual), expected)
    if expected_is_seq:
        return loose_equals(actual, to_text(expected))
    if isinstance(actual, str) and isinstance(expected, str):
        return actual == expected
    if _is_numeric_like(actual) or _is_numeric_like(expected):
        return to_number(actual) == to_number(expected)
    return to_text(actual) == to_text(expected)


def is_empty(value: Any) -> bool:
    """Null, empty string or empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset, Mapping)):
        return len(value) == 0
    return False


def is_not_empty(value: Any) -> bool:
    """Present, non-empty string or non-empty collection."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (list, tuple, set, frozenset, Mapping)):
        return len(value) > 0
    return True


def evaluate(actual: Any, operator: ComparisonOperator | str, expected: Any) -> bool:
    """Evaluate one comparison. Never raises; unknown operators yield False."""
    resolved = _resolve_operator(operator)
    if resolved is None:
        LOGGER.error("Unknown comparison operator %r; treating condition as false", operator)
        return False
    if resolved == ComparisonOperator.EQUALS:
        return loose_equals(actual, expected)
    if resolved == ComparisonOperator.NOT_EQUALS:
        return not loose_equals(actual, expected)
    if resolved == ComparisonOperator.CONTAINS:
        return to_text(expected) in to_text(actual)
    if resolved == ComparisonOperator.GREATER_THAN:
        return to_number(actual) > to_number(expected)
    if resolved == ComparisonOperator.LESS_THAN:
        return to_number(actual) < to_number(expected)
    if resolved == ComparisonOperator.IS_EMPTY:
        return is_empty(actual)
    if resolved == ComparisonOperator.IS_NOT_EMPTY:
        return is_not_empty(actual)
    LOGGER.error("Unhandled comparison operator %r; treating condition as false", operator)
    return False


def _resolve_operator(operator: ComparisonOperator | str) -> ComparisonOperator | None:
    if isinstance(operator, ComparisonOperator):
        return operator
    try:
        return ComparisonOperator(operator)
    except ValueError:
        return None


def _is_numeric_like(value: Any) -> bool:
    return isinstance(value, (bool, int, float))


def _string_to_number(raw: str) -> float:
    text = raw.strip()
    if not text:
        return 0.0
    lowered = text.lower()
    if lowered in _INFINITY_LITERALS:
        return _INFINITY_LITERALS[lowered] if text.lstrip("+-") == "Infinity" else math.nan
    if "inf" in lowered or "nan" in lowered or "_" in text:
        return math.nan
    if lowered.startswith(("0x", "0o", "0b")):
        try:
            return float(int(lowered, 0))
        except ValueError:
            return math.nan
    try:
        return float(text)
    except ValueError:
        return math.nan


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)
