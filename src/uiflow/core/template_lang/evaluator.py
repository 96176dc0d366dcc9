"""
Expression evaluator for the template expression language.

Evaluates expression AST nodes against a context. Pure evaluation: no I/O,
no side effects, no use of Python's eval(). Paths go through the same
``resolve_path`` the rest of the engine uses.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from uiflow.core.conditions import strict_equals
from uiflow.core.errors import ExpressionEvalError
from uiflow.core.paths import resolve_path
from uiflow.core.template_lang.nodes import (
    BinaryExpr,
    BinaryOp,
    Expr,
    FuncCall,
    Literal,
    NotExpr,
    PathRef,
    TernaryExpr,
)


def evaluate(expr: Expr, context: Mapping[str, Any]) -> Any:
    """Evaluate an expression against a context.

    Args:
        expr: Parsed expression AST.
        context: Data the expression's paths are resolved against.

    Returns:
        The computed value (``None`` for a missing path).

    Raises:
        ExpressionEvalError: On an unknown function or bad arity.
    """
    return _interpret(expr, context)


def _interpret(expr: Expr, ctx: Mapping[str, Any]) -> Any:
    """Dispatch evaluation to the appropriate handler."""
    if isinstance(expr, Literal):
        return expr.value

    if isinstance(expr, PathRef):
        return resolve_path(ctx, expr.path)

    if isinstance(expr, BinaryExpr):
        return _interpret_binary(expr, ctx)

    if isinstance(expr, NotExpr):
        return not _interpret(expr.operand, ctx)

    if isinstance(expr, FuncCall):
        return _interpret_func_call(expr, ctx)

    if isinstance(expr, TernaryExpr):
        if _interpret(expr.condition, ctx):
            return _interpret(expr.then_expr, ctx)
        return _interpret(expr.else_expr, ctx)

    raise ExpressionEvalError(f"Unknown expression type: {type(expr).__name__}")


def _interpret_binary(expr: BinaryExpr, ctx: Mapping[str, Any]) -> Any:
    """Evaluate a binary expression."""
    # Short-circuit for logical operators
    if expr.op == BinaryOp.AND:
        return bool(_interpret(expr.left, ctx)) and bool(_interpret(expr.right, ctx))
    if expr.op == BinaryOp.OR:
        return bool(_interpret(expr.left, ctx)) or bool(_interpret(expr.right, ctx))

    left = _interpret(expr.left, ctx)
    right = _interpret(expr.right, ctx)

    if expr.op == BinaryOp.STRICT_EQ:
        return _strict_eq(left, right)
    if expr.op == BinaryOp.STRICT_NE:
        return not _strict_eq(left, right)
    if expr.op == BinaryOp.EQ:
        return loose_equals(left, right)
    if expr.op == BinaryOp.NE:
        return not loose_equals(left, right)

    # Relational: NaN on either side makes every comparison false
    lnum = to_number(left)
    rnum = to_number(right)
    if expr.op == BinaryOp.LT:
        return lnum < rnum
    if expr.op == BinaryOp.GT:
        return lnum > rnum
    if expr.op == BinaryOp.LE:
        return lnum <= rnum
    if expr.op == BinaryOp.GE:
        return lnum >= rnum

    raise ExpressionEvalError(f"Unknown binary op: {expr.op}")


def _strict_eq(left: Any, right: Any) -> bool:
    # A missing value matches false, so `#{flag === false}` holds before flag is set
    if left is None and right is False or left is False and right is None:
        return True
    return strict_equals(left, right)


def to_number(value: Any) -> float:
    """Numeric coercion for relational operators. Non-numeric values become NaN."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def loose_equals(left: Any, right: Any) -> bool:
    """``==`` semantics: null only equals null, numbers equal numeric strings."""
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, bool) or isinstance(right, bool):
        if isinstance(left, bool) and isinstance(right, bool):
            return left is right
        return to_number(left) == to_number(right)
    if isinstance(left, str) and isinstance(right, (int, float)):
        return to_number(left) == right
    if isinstance(right, str) and isinstance(left, (int, float)):
        return left == to_number(right)
    return strict_equals(left, right)


def _interpret_func_call(expr: FuncCall, ctx: Mapping[str, Any]) -> Any:
    """Evaluate a built-in function call (closed set, no user-defined functions)."""
    name = expr.name

    if name in ("exists", "notExists"):
        if len(expr.args) != 1:
            raise ExpressionEvalError(f"{name}() takes exactly 1 argument")
        present = _interpret(expr.args[0], ctx) is not None
        return present if name == "exists" else not present

    raise ExpressionEvalError(f"Unknown function: {name}")
