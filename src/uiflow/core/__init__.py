"""Core uiflow functionality: path resolution, condition evaluation, templates, errors."""

from .conditions import evaluate_condition, strict_equals
from .errors import (
    ActionArgumentError,
    ChainDepthError,
    ErrorContext,
    ExpressionError,
    ExpressionEvalError,
    MissingCapabilityError,
    UIFlowError,
    UnknownActionError,
)
from .paths import resolve_path, split_path
from .template_lang import evaluate_template_expression, extrapolate

__all__ = [
    "UIFlowError",
    "ActionArgumentError",
    "MissingCapabilityError",
    "UnknownActionError",
    "ChainDepthError",
    "ExpressionError",
    "ExpressionEvalError",
    "ErrorContext",
    "resolve_path",
    "split_path",
    "evaluate_condition",
    "strict_equals",
    "extrapolate",
    "evaluate_template_expression",
]
