"""
``#{...}`` placeholder substitution.

Scans a template for placeholders, evaluates each one with the template
expression language and splices the stringified value back in.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from uiflow.core.errors import ExpressionError
from uiflow.core.template_lang.evaluator import evaluate
from uiflow.core.template_lang.parser import parse_template_expr

logger = logging.getLogger(__name__)

_OPEN = "#{"
_UNDEFINED = "undefined"


def evaluate_template_expression(source: str, context: Mapping[str, Any]) -> Any:
    """Parse and evaluate one expression, returning its raw value.

    Raises:
        ExpressionError: If the expression cannot be parsed or evaluated.
    """
    return evaluate(parse_template_expr(source.strip()), context)


def stringify(value: Any) -> str:
    """Render a value the way it appears in an extrapolated string."""
    if value is None:
        return _UNDEFINED
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _find_close(template: str, start: int) -> int:
    """Index of the ``}`` closing a placeholder body starting at ``start``, or -1.

    Braces inside quoted strings do not close the placeholder.
    """
    quote: str | None = None
    i = start
    while i < len(template):
        c = template[i]
        if quote:
            if c == "\\":
                i += 2
                continue
            if c == quote:
                quote = None
        elif c in ("'", '"'):
            quote = c
        elif c == "}":
            return i
        i += 1
    return -1


def _render(source: str, context: Mapping[str, Any]) -> str:
    try:
        return stringify(evaluate_template_expression(source, context))
    except ExpressionError as e:
        logger.debug("Template expression %r rendered as undefined: %s", source, e)
        return _UNDEFINED


def extrapolate(template: str, context: Mapping[str, Any]) -> str:
    """Replace every ``#{expr}`` in ``template`` with the value of ``expr``.

    Example:
        extrapolate("Hello #{user.name}", {"user": {"name": "Alice"}})
        # -> "Hello Alice"

    ``#{}`` and an unterminated ``#{`` are kept verbatim. Expressions that
    fail to parse or evaluate render as ``undefined``.
    """
    if _OPEN not in template:
        return template

    parts: list[str] = []
    pos = 0
    while True:
        start = template.find(_OPEN, pos)
        if start == -1:
            break
        body_start = start + len(_OPEN)
        end = _find_close(template, body_start)
        if end == -1:
            break
        parts.append(template[pos:start])
        body = template[body_start:end]
        if body:
            parts.append(_render(body, context))
        else:
            parts.append(template[start : end + 1])
        pos = end + 1

    parts.append(template[pos:])
    return "".join(parts)


def contains_placeholder(value: Any) -> bool:
    """Whether ``value`` is a string with at least one ``#{`` placeholder."""
    return isinstance(value, str) and _OPEN in value
