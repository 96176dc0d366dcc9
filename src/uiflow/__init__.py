"""
uiflow: a serializable action language for declarative UIs.

Actions describe what should happen when a user interacts with a
component (write state, call an API, navigate, show a toast) together
with their follow-ups. The executor runs them against a three-tier state
model: global, content area, and per component.

Usage:
    from uiflow import ActionExecutionContext, GlobalScope, run_action

    ctx = ActionExecutionContext(global_scope=GlobalScope())
    await run_action({"action": "setState", "args": {"key": "GLOBAL.theme", "value": "dark"}}, ctx)
"""

__version__ = "0.1.0"

from uiflow.core.conditions import evaluate_condition  # noqa: E402
from uiflow.core.paths import resolve_path  # noqa: E402
from uiflow.core.template_lang import extrapolate  # noqa: E402
from uiflow.runtime import (  # noqa: E402
    ActionExecutionContext,
    ActionExecutor,
    ActionRegistry,
    ContentScope,
    GlobalScope,
    default_registry,
    run_action,
)
from uiflow.specs import ActionResult, parse_action  # noqa: E402

__all__ = [
    "__version__",
    "ActionExecutionContext",
    "ActionExecutor",
    "ActionRegistry",
    "ActionResult",
    "ContentScope",
    "GlobalScope",
    "default_registry",
    "evaluate_condition",
    "extrapolate",
    "parse_action",
    "resolve_path",
    "run_action",
]
