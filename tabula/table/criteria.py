"""Row filtering with ``[field, operator, value]`` criteria."""

from __future__ import annotations

import operator as _op
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from tabula.shared.exceptions import CriterionError

from .types import type_name

COMPARISON_OPERATORS = ("=", "==", "!=", "<>", "===", "!==", "<", "<=", ">", ">=")
REGEX_MATCH_OPERATORS = ("~", "~*", "!~", "!~*")
LIST_OPERATORS = ("in", "not_in")
UNARY_OPERATORS = ("null", "not_null", "empty", "not_empty", "true", "false")
MODIFIERS = ("any", "all", "none")
OPERATORS = (
    *COMPARISON_OPERATORS,
    *REGEX_MATCH_OPERATORS,
    *LIST_OPERATORS,
    *UNARY_OPERATORS,
    *MODIFIERS,
    "type",
    "range",
    "callback",
)

_ORDERING = {
    "<": _op.lt,
    "<=": _op.le,
    ">": _op.gt,
    ">=": _op.ge,
}


@dataclass(frozen=True, slots=True)
class Criterion:
    """A single ``field operator value`` test."""

    field: str
    operator: str
    value: Any = None

    def test(self, row: Mapping[str, Any]) -> bool:
        return evaluate(row[self.field], self.operator, self.value)


def parse_criteria(criteria: Iterable[Any] | None) -> list[Criterion]:
    """Normalise raw criteria into Criterion objects.

    A criterion is ``[field, operator]`` or ``[field, operator, value]``; a
    list of fields expands into one criterion per field.
    """
    parsed: list[Criterion] = []
    for raw in criteria or ():
        if isinstance(raw, Criterion):
            parsed.append(raw)
            continue
        if not isinstance(raw, Sequence) or isinstance(raw, str) or not 2 <= len(raw) <= 3:
            raise CriterionError(f"Invalid criterion {raw!r}: expected [field, operator, value]")
        fields, operator = raw[0], raw[1]
        value = raw[2] if len(raw) == 3 else None
        if isinstance(fields, (list, tuple)):
            parsed.extend(parse_criteria([[name, operator, value] for name in fields]))
            continue
        if not isinstance(fields, str) or not fields:
            raise CriterionError(f"Invalid criterion field {fields!r}")
        if operator not in OPERATORS:
            raise CriterionError(f'Undefined criterion operator "{operator}"')
        parsed.append(Criterion(fields, operator, value))
    return parsed


class Criteria:
    """A conjunction of criteria evaluated against rows.

    Criteria whose field is missing from a row are skipped for that row.
    """

    def __init__(self, criteria: Iterable[Any] | None = None) -> None:
        self.criteria = parse_criteria(criteria)

    def __len__(self) -> int:
        return len(self.criteria)

    @property
    def fields(self) -> list[str]:
        return list(dict.fromkeys(criterion.field for criterion in self.criteria))

    def test(self, row: Mapping[str, Any]) -> bool:
        for criterion in self.criteria:
            if criterion.field not in row:
                continue
            if not criterion.test(row):
                return False
        return True

    __call__ = test


def evaluate(value: Any, operator: str, reference: Any = None) -> bool:
    """Return whether ``value`` satisfies ``operator`` against ``reference``."""
    if operator == "type":
        return _is_of_type(value, reference)
    if operator == "null":
        return value is None
    if operator == "not_null":
        return value is not None
    if operator == "empty":
        return _is_empty(value)
    if operator == "not_empty":
        return not _is_empty(value)
    if operator == "true":
        return value is True or (type_name(value) == "integer" and value == 1) or value == "1"
    if operator == "false":
        return value is False or (type_name(value) == "integer" and value == 0) or value == "0"

    if operator in ("=", "=="):
        return value == reference
    if operator in ("!=", "<>"):
        return value != reference
    if operator == "===":
        return is_identical(value, reference)
    if operator == "!==":
        return not is_identical(value, reference)
    if operator in _ORDERING:
        try:
            return bool(_ORDERING[operator](value, reference))
        except TypeError:
            return False

    if operator in REGEX_MATCH_OPERATORS:
        matched = _matches(value, reference, case_sensitive=not operator.endswith("*"))
        return not matched if operator.startswith("!") else matched

    if operator == "in":
        return _in_list(value, reference)
    if operator == "not_in":
        return not _in_list(value, reference)
    if operator in MODIFIERS:
        return _evaluate_multiple(value, reference, operator)
    if operator == "range":
        return _in_range(value, reference)
    if operator == "callback":
        if not callable(reference):
            raise CriterionError("The callback criterion requires a callable")
        return bool(reference(value))

    raise CriterionError(f'Undefined criterion operator "{operator}"')


def is_identical(left: Any, right: Any) -> bool:
    """Strict equality: same data type and same value."""
    return type_name(left) == type_name(right) and left == right


def _is_of_type(value: Any, expected: Any) -> bool:
    if expected == "numeric":
        return type_name(value) in ("integer", "double") or _is_numeric_text(value)
    if expected == "scalar":
        return type_name(value) in ("string", "integer", "double", "boolean")
    if expected == "callable":
        return callable(value)
    return type_name(value) == expected


def _is_numeric_text(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        float(value)
    except ValueError:
        return False
    return True


def _is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


def _as_text(value: Any) -> str:
    if value is None or value is False:
        return ""
    if value is True:
        return "1"
    return str(value)


@lru_cache(maxsize=256)
def _compile(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    try:
        return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    except re.error as exc:
        raise CriterionError(f"Invalid regular expression {pattern!r}: {exc}") from exc


def _matches(value: Any, pattern: Any, *, case_sensitive: bool) -> bool:
    if not isinstance(pattern, str):
        raise CriterionError("Pattern matching criteria require a string pattern")
    return _compile(pattern, case_sensitive).search(_as_text(value)) is not None


def _in_list(value: Any, choices: Any) -> bool:
    if not isinstance(choices, (list, tuple, set, frozenset)):
        raise CriterionError("List criteria require a list of choices")
    return any(is_identical(value, choice) for choice in choices)


def _in_range(value: Any, bounds: Any) -> bool:
    if not isinstance(bounds, Mapping) or bounds.get("min") is None or bounds.get("max") is None:
        raise CriterionError("Range criteria require a mapping with 'min' and 'max'")
    try:
        return bool(bounds["min"] <= value <= bounds["max"])
    except TypeError:
        return False


def _evaluate_multiple(value: Any, conditions: Any, modifier: str) -> bool:
    """Combine several ``[operator, reference]`` conditions with any/all/none."""
    if isinstance(conditions, Mapping) and "operator" in conditions and "values" in conditions:
        conditions = [[conditions["operator"], item] for item in conditions["values"]]
    if not conditions or not isinstance(conditions, (list, tuple)):
        raise CriterionError(f"The {modifier!r} criterion requires a list of conditions")

    for condition in conditions:
        if not isinstance(condition, (list, tuple)) or len(condition) != 2 or not isinstance(condition[0], str):
            raise CriterionError(f"Invalid condition {condition!r} in {modifier!r} criterion")
        if evaluate(value, condition[0], condition[1]):
            if modifier == "any":
                return True
            if modifier == "none":
                return False
        elif modifier == "all":
            return False
    return modifier != "any"

