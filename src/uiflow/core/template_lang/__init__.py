"""
uiflow template expression language.

Tokenizer, parser and evaluator for the expressions inside ``#{...}``
placeholders, plus the substitution routine that applies them.

Usage:
    from uiflow.core.template_lang import extrapolate

    extrapolate('Role: #{user.isAdmin ? "Administrator" : "User"}', ctx)
"""

from uiflow.core.template_lang.evaluator import evaluate
from uiflow.core.template_lang.extrapolate import (
    contains_placeholder,
    evaluate_template_expression,
    extrapolate,
    stringify,
)
from uiflow.core.template_lang.parser import ExpressionParseError, parse_template_expr
from uiflow.core.template_lang.tokenizer import ExpressionTokenError

__all__ = [
    "ExpressionParseError",
    "ExpressionTokenError",
    "contains_placeholder",
    "evaluate",
    "evaluate_template_expression",
    "extrapolate",
    "parse_template_expr",
    "stringify",
]
