"""
Argument value resolution for action handlers.

Handlers accept literal argument values, but a string argument can also
point into the chain context (``"__result.user"``), into global state
(``"GLOBAL.theme"``) or carry a ``#{...}`` template. ``resolve_arg_value``
is the one place that decides which.
"""

from __future__ import annotations

import re
from typing import Any

from uiflow.core.paths import resolve_path
from uiflow.core.template_lang import contains_placeholder, extrapolate
from uiflow.runtime.context import ActionExecutionContext, build_evaluation_context

GLOBAL_PREFIXES = ("__global.", "GLOBAL.")
CURRENT_PREFIX = "__current."
RESULT_PREFIXES = ("__result.", "result.")

# Reserved prefixes that always mark a path
_PATH_PREFIXES = ("__", "result.", "GLOBAL.")
# Two or more identifier segments, each optionally indexed: user.profile.name, items[0].id
_DOTTED_PATH_RE = re.compile(
    r"^[A-Za-z_$][\w$]*(?:\[\d+\])*(?:\.[A-Za-z_$][\w$]*(?:\[\d+\])*)+$"
)


def looks_like_path(value: Any) -> bool:
    """Whether a string argument should be read as a context path.

    Free text such as ``"Saved. Thanks"`` is not a path; only reserved
    prefixes and whole dotted identifier paths are.
    """
    if not isinstance(value, str):
        return False
    return value.startswith(_PATH_PREFIXES) or bool(_DOTTED_PATH_RE.match(value))


def resolve_context_value(
    path: str,
    context: ActionExecutionContext,
    chain_context: Any = None,
    component_id: str | None = None,
) -> Any:
    """Resolve ``path`` with prefix dispatch.

    - ``__global.x`` / ``GLOBAL.x``: global state
    - ``__current.x``: the calling component's store
    - ``__result.x`` / ``result.x``: the chain context's result
    - anything else: the chain context's result when there is one,
      otherwise global state
    """
    for prefix in GLOBAL_PREFIXES:
        if path.startswith(prefix):
            return resolve_path(context.global_scope.get_all_state(), path[len(prefix) :])

    if path.startswith(CURRENT_PREFIX):
        if context.content is None:
            return None
        store = context.content.get_component_state_store(
            component_id or context.default_component_id
        )
        return resolve_path(store.get_all_state(), path[len(CURRENT_PREFIX) :])

    result = getattr(chain_context, "result", None)
    for prefix in RESULT_PREFIXES:
        if path.startswith(prefix):
            return resolve_path(result if result is not None else {}, path[len(prefix) :])

    if result is not None:
        return resolve_path(result, path)
    return resolve_path(context.global_scope.get_all_state(), path)


def resolve_arg_value(
    value: Any, context: ActionExecutionContext, component_id: str | None = None
) -> Any:
    """Resolve one handler argument.

    Template strings are extrapolated against the evaluation context.
    Path-looking strings are resolved, but only when the dispatch follows
    another action (a chain context exists). Everything else is returned
    unchanged.
    """
    if contains_placeholder(value):
        return render_text(value, context)

    if context.chain_context is not None and looks_like_path(value):
        return resolve_context_value(value, context, context.chain_context, component_id)

    return value


def render_text(value: Any, context: ActionExecutionContext) -> Any:
    """Extrapolate a user-facing text argument.

    Unlike ``resolve_arg_value`` a dotted string is never read as a path, so
    a message such as ``"form.invalid"`` is shown as written.
    """
    if contains_placeholder(value):
        eval_ctx = build_evaluation_context(
            context.chain_context, context.global_scope.get_all_state()
        )
        return extrapolate(value, eval_ctx)
    return value
