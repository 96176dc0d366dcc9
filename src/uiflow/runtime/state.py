"""
Hierarchical state stores.

Three tiers share one surface (``get_state`` / ``set_state`` /
``get_all_state``):

- global: page-wide, lives for the session
- content: one per active content area, torn down when it unmounts
- component: one per component id, created lazily by the content scope

``select_store`` is the single routing rule every handler uses to pick a
tier for a key.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from uiflow.core.errors import MissingCapabilityError
from uiflow.specs.state import StateScope, strip_scope_prefix

if TYPE_CHECKING:
    from uiflow.runtime.context import ActionExecutionContext

logger = logging.getLogger(__name__)

StateListener = Callable[[str, Any], None]


@runtime_checkable
class StateStore(Protocol):
    """Key/value capability shared by all three tiers."""

    def get_state(self, key: str) -> Any: ...

    def set_state(self, key: str, value: Any) -> None: ...

    def get_all_state(self) -> dict[str, Any]: ...


class InMemoryStateStore:
    """
    Dict-backed state store with change notification.

    Listeners are called synchronously after every write with ``(key, value)``
    so a presentation layer can re-render.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._state: dict[str, Any] = dict(initial or {})
        self._listeners: list[StateListener] = []

    def get_state(self, key: str) -> Any:
        return self._state.get(key)

    def set_state(self, key: str, value: Any) -> None:
        self._state[key] = value
        for listener in list(self._listeners):
            try:
                listener(key, value)
            except Exception:
                logger.exception("State listener failed for key %r", key)

    def get_all_state(self) -> dict[str, Any]:
        """Shallow snapshot; mutating it does not touch the store."""
        return dict(self._state)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def __len__(self) -> int:
        return len(self._state)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._state!r})"


class ComponentStateStore(InMemoryStateStore):
    """State owned by exactly one component id."""

    def __init__(self, component_id: str, initial: dict[str, Any] | None = None) -> None:
        super().__init__(initial)
        self.component_id = component_id

    def __repr__(self) -> str:
        return f"ComponentStateStore({self.component_id!r}, {self._state!r})"


class ContentScope:
    """
    State for one active content area plus its component stores.

    Component stores are created on first reference and cached until
    ``dispose`` is called for their id (usually when the component unmounts).
    """

    def __init__(
        self,
        state: StateStore | None = None,
        component_factory: Callable[[str], StateStore] | None = None,
    ) -> None:
        self.state: StateStore = state if state is not None else InMemoryStateStore()
        self._factory = component_factory or ComponentStateStore
        self._components: dict[str, StateStore] = {}

    # Content-level state

    def get_content_state(self, key: str) -> Any:
        return self.state.get_state(key)

    def set_content_state(self, key: str, value: Any) -> None:
        self.state.set_state(key, value)

    def get_all_content_state(self) -> dict[str, Any]:
        return self.state.get_all_state()

    # Component stores

    def get_component_state_store(self, component_id: str) -> StateStore:
        """Return the store for ``component_id``, creating it on first use."""
        store = self._components.get(component_id)
        if store is None:
            store = self._factory(component_id)
            self._components[component_id] = store
            logger.debug("Created component store %r", component_id)
        return store

    def has_component(self, component_id: str) -> bool:
        return component_id in self._components

    def dispose(self, component_id: str) -> bool:
        """Drop a component's store. Returns whether one existed."""
        existed = self._components.pop(component_id, None) is not None
        if existed:
            logger.debug("Disposed component store %r", component_id)
        return existed

    def component_ids(self) -> list[str]:
        return list(self._components)


def select_store(
    context: ActionExecutionContext,
    key: str,
    component_id: str | None = None,
) -> tuple[StateStore, str, StateScope]:
    """Pick the store an addressed key lives in.

    Rules, first match wins:
        1. ``GLOBAL.`` prefix: global store, prefix stripped
        2. ``CONTENT.`` prefix: content store, prefix stripped
        3. explicit ``component_id``: that component's store
        4. the default component's store
        5. no content scope at all: global store

    Returns:
        ``(store, bare_key, scope)``

    Raises:
        MissingCapabilityError: A ``CONTENT.`` key with no content scope.
    """
    scope, bare_key = strip_scope_prefix(key)
    global_store = context.global_scope.state

    if scope == StateScope.GLOBAL:
        return global_store, bare_key, StateScope.GLOBAL

    content = context.content
    if scope == StateScope.CONTENT:
        if content is None:
            raise MissingCapabilityError(
                f"Key {key!r} addresses content state but no content scope is active"
            )
        return content.state, bare_key, StateScope.CONTENT

    if content is None:
        return global_store, bare_key, StateScope.GLOBAL

    target = component_id or context.default_component_id
    return content.get_component_state_store(target), bare_key, StateScope.COMPONENT
