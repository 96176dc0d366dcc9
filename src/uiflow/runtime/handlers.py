"""
Built-in action handlers.

Every handler takes ``(args, ctx)`` and returns an ``ActionResult``.
Argument problems raise ``ActionArgumentError`` and absent host
capabilities raise ``MissingCapabilityError``; the executor turns both
into failed results.

State handlers route keys through ``select_store``: ``GLOBAL.`` and
``CONTENT.`` prefixes pick those tiers, an explicit ``componentId`` picks
that component, anything else lands in the default component's store.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from numbers import Real
from typing import Any

from pydantic import ValidationError

from uiflow.core.conditions import evaluate_condition
from uiflow.core.errors import ActionArgumentError, MissingCapabilityError
from uiflow.runtime.context import ActionExecutionContext
from uiflow.runtime.registry import ActionHandler, ActionRegistry, maybe_await
from uiflow.runtime.slugs import resolve_url
from uiflow.runtime.state import select_store
from uiflow.runtime.values import render_text, resolve_arg_value
from uiflow.specs.results import ActionResult, ApiRequest, ToastType
from uiflow.specs.state import CONTENT_PREFIX

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An error occurred"
DEFAULT_FILTER_KEY = "filterActive"


# =============================================================================
# Argument helpers
# =============================================================================


def _require_str(args: Mapping[str, Any], key: str, action: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value:
        raise ActionArgumentError(f"{action} requires args.{key} to be a non-empty string")
    return value


def _component_id(args: Mapping[str, Any]) -> str | None:
    value = args.get("componentId")
    return value if isinstance(value, str) and value else None


def _require_content(ctx: ActionExecutionContext, action: str) -> None:
    if ctx.content is None:
        raise MissingCapabilityError(f"{action} requires an active content scope")


def _missing(action: str, capability: str) -> MissingCapabilityError:
    return MissingCapabilityError(
        f"{action} requires the global scope to provide {capability}"
    )


def _as_number(value: Any) -> float | int:
    if isinstance(value, Real) and not isinstance(value, bool):
        return value
    return 0


# =============================================================================
# State
# =============================================================================


def set_state(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Write a value into the store its key addresses."""
    key = _require_str(args, "key", "setState")
    component_id = _component_id(args)
    value = resolve_arg_value(args.get("value"), ctx, component_id)

    store, bare_key, scope = select_store(ctx, key, component_id)
    store.set_state(bare_key, value)
    return ActionResult.ok({"key": key, "value": value, "scope": scope.value})


def get_state(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Read a value; optionally copy it to ``stateKey``."""
    key = _require_str(args, "key", "getState")
    component_id = _component_id(args)

    store, bare_key, _ = select_store(ctx, key, component_id)
    value = store.get_state(bare_key)

    state_key = args.get("stateKey")
    if isinstance(state_key, str) and state_key:
        target, target_key, _ = select_store(ctx, state_key, component_id)
        target.set_state(target_key, value)

    return ActionResult.ok(value)


def toggle_state(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Flip a boolean flag (missing counts as false)."""
    key = _require_str(args, "key", "toggleState")
    store, bare_key, scope = select_store(ctx, key, _component_id(args))
    value = not store.get_state(bare_key)
    store.set_state(bare_key, value)
    return ActionResult.ok({"key": key, "value": value, "scope": scope.value})


def clear_state(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Clear one key, one component's whole store, or every global key."""
    key = args.get("key")
    component_id = _component_id(args)

    if isinstance(key, str) and key:
        store, bare_key, _ = select_store(ctx, key, component_id)
        store.set_state(bare_key, None)
        return ActionResult.ok({"key": key, "cleared": True})

    if component_id:
        _require_content(ctx, "clearState")
        assert ctx.content is not None
        store = ctx.content.get_component_state_store(component_id)
        keys = list(store.get_all_state())
        for name in keys:
            store.set_state(name, None)
        return ActionResult.ok({"componentId": component_id, "cleared": len(keys)})

    global_state = ctx.global_scope.state
    keys = list(global_state.get_all_state())
    for name in keys:
        global_state.set_state(name, None)
    logger.info("Cleared %d global state keys", len(keys))
    return ActionResult.ok({"cleared": len(keys)})


def update_content_state(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Write a key into the active content area's state."""
    key = _require_str(args, "key", "updateContentState")
    _require_content(ctx, "updateContentState")
    value = resolve_arg_value(args.get("value"), ctx, _component_id(args))

    store, bare_key, _ = select_store(ctx, CONTENT_PREFIX + key)
    store.set_state(bare_key, value)
    return ActionResult.ok({"key": key, "value": value})


def toggle_content_filter(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Flip a content-level flag (``filterActive`` by default)."""
    key = args.get("key") or DEFAULT_FILTER_KEY
    if not isinstance(key, str):
        raise ActionArgumentError("toggleContentFilter requires args.key to be a string")
    _require_content(ctx, "toggleContentFilter")

    store, bare_key, _ = select_store(ctx, CONTENT_PREFIX + key)
    value = not store.get_state(bare_key)
    store.set_state(bare_key, value)
    return ActionResult.ok({"key": key, "value": value})


def _counter_target(args: dict[str, Any], ctx: ActionExecutionContext) -> tuple[Any, str]:
    component_id = _component_id(args)
    key = args.get("key") or component_id or ctx.default_component_id
    if not isinstance(key, str):
        raise ActionArgumentError("Counter key must be a string")
    store, bare_key, _ = select_store(ctx, key, component_id)
    return store, bare_key


def increment_counter(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Add one to a counter keyed by the component id."""
    store, key = _counter_target(args, ctx)
    value = _as_number(store.get_state(key)) + 1
    store.set_state(key, value)
    return ActionResult.ok({"key": key, "value": value})


def decrement_counter(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Subtract one from a counter, never going below zero."""
    store, key = _counter_target(args, ctx)
    value = max(0, _as_number(store.get_state(key)) - 1)
    store.set_state(key, value)
    return ActionResult.ok({"key": key, "value": value})


def toggle_component(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Flip a component's open/active flag."""
    store, key = _counter_target(args, ctx)
    value = not store.get_state(key)
    store.set_state(key, value)
    return ActionResult.ok({"key": key, "value": value})


def update_component_input(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Store a component's current input value (empty string when absent)."""
    store, key = _counter_target(args, ctx)
    value = resolve_arg_value(args.get("value"), ctx, _component_id(args))
    if value is None:
        value = ""
    store.set_state(key, value)
    return ActionResult.ok({"key": key, "value": value})


# =============================================================================
# Navigation and network
# =============================================================================


async def navigate(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Go to a path, filling ``:slug`` placeholders from params and state."""
    path = resolve_arg_value(_require_str(args, "path", "navigate"), ctx)
    if not isinstance(path, str):
        raise ActionArgumentError("navigate path did not resolve to a string")
    params = args.get("params")
    if params is not None and not isinstance(params, Mapping):
        raise ActionArgumentError("navigate requires args.params to be an object")

    fn = ctx.global_scope.navigate
    if fn is None:
        raise _missing("navigate", "navigate")

    resolved = resolve_url(path, ctx, params)
    await maybe_await(fn(resolved))
    return ActionResult.ok({"path": resolved})


async def make_api_call(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Call the host's network function and return its response."""
    url = _require_str(args, "url", "makeApiCall")
    method = args.get("method") or "GET"
    if not isinstance(method, str):
        raise ActionArgumentError("makeApiCall requires args.method to be a string")
    body = args.get("body")

    fn = ctx.global_scope.make_api_call
    if fn is None:
        raise _missing("makeApiCall", "make_api_call")

    if "#{" in url:
        url = resolve_arg_value(url, ctx)
    resolved = resolve_url(url, ctx, body if isinstance(body, Mapping) else None)
    request = ApiRequest(url=resolved, method=method.upper(), body=body)

    logger.debug("makeApiCall %s %s", request.method, request.url)
    response = await maybe_await(fn(request))
    return ActionResult.ok(response)


# =============================================================================
# Persistent storage
# =============================================================================


def _storage(ctx: ActionExecutionContext, action: str) -> Any:
    storage = ctx.global_scope.storage
    if storage is None:
        raise _missing(action, "storage")
    return storage


def set_local_storage(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Persist a value under a storage key."""
    storage = _storage(ctx, "setLocalStorage")
    key = _require_str(args, "key", "setLocalStorage")
    if args.get("value") is None:
        raise ActionArgumentError("setLocalStorage requires args.value")

    value = resolve_arg_value(args["value"], ctx, _component_id(args))
    storage.set(key, value)
    return ActionResult.ok({"key": key, "value": value})


def get_local_storage(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Read a persisted value; optionally copy it to ``stateKey``."""
    storage = _storage(ctx, "getLocalStorage")
    key = _require_str(args, "key", "getLocalStorage")
    value = storage.get(key)

    state_key = args.get("stateKey")
    if isinstance(state_key, str) and state_key:
        store, bare_key, _ = select_store(ctx, state_key, _component_id(args))
        store.set_state(bare_key, value)

    return ActionResult.ok(value)


def remove_local_storage(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Delete one persisted key."""
    storage = _storage(ctx, "removeLocalStorage")
    key = _require_str(args, "key", "removeLocalStorage")
    storage.remove(key)
    return ActionResult.ok({"key": key})


def clear_local_storage(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Delete every persisted key."""
    _storage(ctx, "clearLocalStorage").clear()
    return ActionResult.ok({"cleared": True})


# =============================================================================
# Feedback
# =============================================================================


async def show_toast(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Show a toast, or record it in state when the host has no toast support."""
    message = render_text(args.get("message"), ctx)
    if not message:
        raise ActionArgumentError("showToast requires args.message")
    try:
        toast_type = ToastType(args.get("type") or ToastType.INFO)
    except ValueError as e:
        raise ActionArgumentError(f"Unknown toast type: {args.get('type')!r}") from e

    fn = ctx.global_scope.show_toast
    if fn is not None:
        await maybe_await(fn(str(message), toast_type.value))
    else:
        store, _, _ = select_store(ctx, "toastMessage", _component_id(args))
        store.set_state("toastMessage", message)
        store.set_state("toastType", toast_type.value)
        store.set_state("showToast", True)

    return ActionResult.ok({"message": message, "type": toast_type.value})


async def report_error(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Surface an error message, taken from args or from the preceding failure."""
    chain_error = ctx.chain_context.error if ctx.chain_context is not None else None
    message = render_text(args.get("message"), ctx)
    if not message and chain_error is not None:
        message = str(chain_error)
    if not message:
        message = DEFAULT_ERROR_MESSAGE
    details = args.get("details")

    fn = ctx.global_scope.error
    if fn is not None:
        await maybe_await(fn(str(message), details if details is not None else chain_error))
    else:
        store, _, _ = select_store(ctx, "errorMessage", _component_id(args))
        store.set_state("errorMessage", message)
        store.set_state("hasError", True)
        logger.warning("Action error: %s", message)

    return ActionResult.ok({"message": message, "details": details})


# =============================================================================
# Auth
# =============================================================================


async def login(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Authenticate through the host's ``login`` callback."""
    fn = ctx.global_scope.login
    if fn is None:
        raise _missing("login", "login")
    username = resolve_arg_value(args.get("username"), ctx)
    password = resolve_arg_value(args.get("password"), ctx)
    if not username or not password:
        raise ActionArgumentError("login requires username and password")

    response = await maybe_await(fn({"username": username, "password": password}))
    if isinstance(response, ActionResult):
        return response
    if isinstance(response, Mapping) and "success" in response:
        if response["success"]:
            return ActionResult.ok(response)
        return ActionResult.fail(response.get("error") or "Login failed", result=response)
    return ActionResult.ok(response)


async def logout(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """End the session through the host's ``logout`` callback."""
    fn = ctx.global_scope.logout
    if fn is None:
        raise _missing("logout", "logout")
    await maybe_await(fn())
    return ActionResult.ok({"success": True})


# =============================================================================
# Conditions
# =============================================================================


def show_hide(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Evaluate a visibility condition against ``data`` or global state."""
    condition = args.get("condition")
    if not condition:
        raise ActionArgumentError("showHide requires args.condition")
    data = args.get("data")
    if not isinstance(data, Mapping):
        data = ctx.global_scope.get_all_state()

    try:
        visible = evaluate_condition(condition, data)
    except ValidationError as e:
        # Hidden when the condition is malformed
        return ActionResult.fail(ActionArgumentError(f"Invalid condition: {e}"), result=False)
    return ActionResult.ok(visible)


def evaluate_field_condition(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
    """Evaluate a form field's condition against ``formData`` or global state."""
    condition = args.get("condition")
    if not condition:
        raise ActionArgumentError("evaluateFieldCondition requires args.condition")
    data = args.get("formData")
    if not isinstance(data, Mapping):
        data = ctx.global_scope.get_all_state()

    try:
        visible = evaluate_condition(condition, data)
    except ValidationError as e:
        # Visible when the condition is malformed
        return ActionResult.fail(ActionArgumentError(f"Invalid condition: {e}"), result=True)
    return ActionResult.ok(visible)


# =============================================================================
# Registration
# =============================================================================

BUILTIN_ACTIONS: dict[str, ActionHandler] = {
    # State
    "setState": set_state,
    "getState": get_state,
    "toggleState": toggle_state,
    "clearState": clear_state,
    "updateContentState": update_content_state,
    "toggleContentFilter": toggle_content_filter,
    "incrementCounter": increment_counter,
    "decrementCounter": decrement_counter,
    "toggleComponent": toggle_component,
    "updateComponentInput": update_component_input,
    # Navigation and network
    "navigate": navigate,
    "makeApiCall": make_api_call,
    # Storage
    "setLocalStorage": set_local_storage,
    "getLocalStorage": get_local_storage,
    "removeLocalStorage": remove_local_storage,
    "clearLocalStorage": clear_local_storage,
    # Feedback
    "showToast": show_toast,
    "error": report_error,
    # Auth
    "login": login,
    "logout": logout,
    # Conditions
    "showHide": show_hide,
    "evaluateFieldCondition": evaluate_field_condition,
}


def register_builtin_actions(registry: ActionRegistry) -> None:
    """Register every built-in handler on ``registry``."""
    for name, handler in BUILTIN_ACTIONS.items():
        registry.register(name, handler)
