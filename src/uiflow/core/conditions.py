"""
Conditional expression evaluator.

Evaluates ``and`` / ``or`` groups and field/operator/value leaves against a
flat context. Pure evaluation: no side effects, never raises on data, safe
to call speculatively.
"""

from __future__ import annotations

from collections.abc import Mapping
from numbers import Real
from typing import Any

from uiflow.core.paths import resolve_path
from uiflow.specs.conditions import (
    AndCondition,
    ConditionalExpression,
    FilterCondition,
    Operator,
    OrCondition,
    parse_condition,
)


def evaluate_condition(
    expr: ConditionalExpression | Mapping[str, Any], context: Mapping[str, Any]
) -> bool:
    """Evaluate a condition against a context.

    Args:
        expr: Parsed condition, or its wire-format mapping.
        context: Flat evaluation context (e.g. global state plus ``__result``).

    Returns:
        Whether the condition holds.

    Raises:
        pydantic.ValidationError: If ``expr`` is a mapping of no known shape.
    """
    if isinstance(expr, Mapping):
        expr = parse_condition(expr)
    return _interpret(expr, context)


def _interpret(expr: ConditionalExpression, ctx: Mapping[str, Any]) -> bool:
    if isinstance(expr, AndCondition):
        return all(_interpret(member, ctx) for member in expr.and_)
    if isinstance(expr, OrCondition):
        return any(_interpret(member, ctx) for member in expr.or_)
    if isinstance(expr, FilterCondition):
        return _compare(expr, ctx)
    return False


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without bool/number crossover: ``True`` never equals ``1``."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    try:
        return bool(left == right)
    except Exception:
        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _contains(items: Any, value: Any) -> bool:
    return any(strict_equals(item, value) for item in items)


def _compare(leaf: FilterCondition, ctx: Mapping[str, Any]) -> bool:
    actual = resolve_path(ctx, leaf.field)
    expected = leaf.value
    op = leaf.operator

    if op == Operator.EQ:
        return strict_equals(actual, expected)
    if op == Operator.NE:
        return not strict_equals(actual, expected)

    if op in (Operator.LIKE, Operator.ILIKE):
        if not isinstance(actual, str) or not isinstance(expected, str):
            return False
        if op == Operator.LIKE:
            return expected in actual
        return expected.casefold() in actual.casefold()

    if op in (Operator.IN, Operator.NIN):
        if not isinstance(expected, (list, tuple)):
            return False
        found = _contains(expected, actual)
        return found if op == Operator.IN else not found

    if op in (Operator.GT, Operator.GTE, Operator.LT, Operator.LTE):
        if not _is_number(actual) or not _is_number(expected):
            return False
        if op == Operator.GT:
            return actual > expected
        if op == Operator.GTE:
            return actual >= expected
        if op == Operator.LT:
            return actual < expected
        return actual <= expected

    # Unknown operator
    return False
