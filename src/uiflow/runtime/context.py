"""
Execution context handed to every action handler.

The host builds one ``GlobalScope`` per session and one ``ContentScope`` per
active content area, then dispatches actions with an
``ActionExecutionContext`` that ties them together. Contexts are immutable;
the executor derives child contexts for then/chain steps instead of
mutating a shared one.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable

from uiflow.runtime.state import ContentScope, InMemoryStateStore, StateStore
from uiflow.specs.results import ActionResult, ApiRequest

DEFAULT_COMPONENT_ID = "default"

# Host callbacks. Any of them may return an awaitable.
NavigateFn = Callable[[str], Any]
ApiCallFn = Callable[[ApiRequest], Any]
ToastFn = Callable[[str, str], Any]
LoginFn = Callable[[dict[str, Any]], Any]
LogoutFn = Callable[[], Any]
ErrorFn = Callable[[str, Any], Any]
DynamicFn = Callable[[str, dict[str, Any], Any], Any]


@runtime_checkable
class KeyValueStorage(Protocol):
    """Persistent key/value storage (e.g. a browser's localStorage)."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryStorage:
    """In-memory ``KeyValueStorage`` for tests and hosts without persistence."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.items: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self.items.get(key)

    def set(self, key: str, value: Any) -> None:
        self.items[key] = value

    def remove(self, key: str) -> None:
        self.items.pop(key, None)

    def clear(self) -> None:
        self.items.clear()


@dataclass
class GlobalScope:
    """
    Page-wide state plus the side-effecting capabilities the host injects.

    Only ``state`` is always present. Handlers that need an absent
    capability report ``MissingCapabilityError`` instead of crashing.
    """

    state: StateStore = field(default_factory=InMemoryStateStore)
    navigate: NavigateFn | None = None
    make_api_call: ApiCallFn | None = None
    storage: KeyValueStorage | None = None
    show_toast: ToastFn | None = None
    login: LoginFn | None = None
    logout: LogoutFn | None = None
    error: ErrorFn | None = None
    dynamic: DynamicFn | None = None

    def get_state(self, key: str) -> Any:
        return self.state.get_state(key)

    def set_state(self, key: str, value: Any) -> None:
        self.state.set_state(key, value)

    def get_all_state(self) -> dict[str, Any]:
        return self.state.get_all_state()


@dataclass(frozen=True)
class ActionExecutionContext:
    """
    Everything a handler can see during one dispatch.

    Attributes:
        global_scope: Session-wide state and capabilities
        content: Active content area, if any
        event: The UI event that triggered the top-level dispatch
        chain_context: Result of the action this one follows, if any
        depth: Nesting depth (0 for a top-level dispatch)
        default_component_id: Component store used when no id is given
    """

    global_scope: GlobalScope
    content: ContentScope | None = None
    event: Any = None
    chain_context: ActionResult | None = None
    depth: int = 0
    default_component_id: str = DEFAULT_COMPONENT_ID

    def with_chain(self, result: ActionResult | None) -> ActionExecutionContext:
        """Copy carrying ``result`` as the chain context."""
        return replace(self, chain_context=result)

    def descend(self, result: ActionResult | None = None) -> ActionExecutionContext:
        """Context for a nested dispatch: one level deeper, chained on ``result``."""
        return replace(self, chain_context=result, depth=self.depth + 1)


def build_evaluation_context(
    result: ActionResult | None, global_state: Mapping[str, Any]
) -> dict[str, Any]:
    """Flat snapshot conditions and templates are evaluated against.

    Global state keys come first; the reserved ``__success``, ``__hasError``,
    ``__result`` and ``__error`` keys are overlaid on top.
    """
    ctx = dict(global_state)
    ctx["__success"] = result.success if result is not None else False
    ctx["__hasError"] = result.has_error if result is not None else False
    ctx["__result"] = result.result if result is not None else None
    ctx["__error"] = result.error if result is not None else None
    return ctx
