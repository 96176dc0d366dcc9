"""
uiflow runtime: state scopes, the action registry and the executor.
"""

from uiflow.runtime.context import (
    ActionExecutionContext,
    GlobalScope,
    KeyValueStorage,
    MemoryStorage,
    build_evaluation_context,
)
from uiflow.runtime.executor import ActionExecutor, run_action
from uiflow.runtime.registry import ActionRegistry, default_registry, resolve_handler
from uiflow.runtime.slugs import (
    extract_route_params,
    match_route,
    resolve_slugged_path,
    resolve_url,
)
from uiflow.runtime.state import (
    ComponentStateStore,
    ContentScope,
    InMemoryStateStore,
    StateStore,
    select_store,
)
from uiflow.runtime.values import looks_like_path, resolve_arg_value, resolve_context_value

__all__ = [
    # Context
    "ActionExecutionContext",
    "GlobalScope",
    "KeyValueStorage",
    "MemoryStorage",
    "build_evaluation_context",
    # Execution
    "ActionExecutor",
    "ActionRegistry",
    "default_registry",
    "resolve_handler",
    "run_action",
    # State
    "ComponentStateStore",
    "ContentScope",
    "InMemoryStateStore",
    "StateStore",
    "select_store",
    # Values
    "looks_like_path",
    "resolve_arg_value",
    "resolve_context_value",
    # Slugs
    "extract_route_params",
    "match_route",
    "resolve_slugged_path",
    "resolve_url",
]
