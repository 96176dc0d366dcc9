"""
uiflow specification types.

This module exports all serializable action, condition and result types.
"""

from uiflow.specs.actions import (
    ActionDescriptor,
    ConditionalChain,
    NamedAction,
    SerializableAction,
    dump_action,
    parse_action,
)
from uiflow.specs.conditions import (
    AndCondition,
    ConditionalExpression,
    FilterCondition,
    Operator,
    OrCondition,
    dump_condition,
    parse_condition,
)
from uiflow.specs.results import ActionResult, ApiRequest, ToastType
from uiflow.specs.state import (
    CONTENT_PREFIX,
    GLOBAL_PREFIX,
    StateScope,
    strip_scope_prefix,
)

__all__ = [
    # Actions
    "ActionDescriptor",
    "ConditionalChain",
    "NamedAction",
    "SerializableAction",
    "dump_action",
    "parse_action",
    # Conditions
    "AndCondition",
    "ConditionalExpression",
    "FilterCondition",
    "Operator",
    "OrCondition",
    "dump_condition",
    "parse_condition",
    # Results
    "ActionResult",
    "ApiRequest",
    "ToastType",
    # State
    "CONTENT_PREFIX",
    "GLOBAL_PREFIX",
    "StateScope",
    "strip_scope_prefix",
]
