"""Action registry: maps action names to handler callables.

Registries are plain objects the host creates and hands to the executor.
There is no process-wide registry; ``default_registry()`` builds a fresh
one populated with the built-in handlers every time it is called.

Handler contract::

    def handler(args: dict, ctx: ActionExecutionContext) -> ActionResult | None:
        ...

Handlers may also be ``async``. Returning ``None`` means success with no
result; raising turns into a failed ``ActionResult``.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from uiflow.runtime.context import ActionExecutionContext
from uiflow.specs.results import ActionResult

logger = logging.getLogger(__name__)

ActionHandler = Callable[
    [dict[str, Any], ActionExecutionContext],
    ActionResult | None | Awaitable[ActionResult | None],
]


@dataclass
class ActionRegistry:
    """Registry of action handlers keyed by wire name."""

    _handlers: dict[str, ActionHandler] = field(default_factory=dict)

    def register(self, name: str, handler: ActionHandler) -> None:
        """Register ``handler`` under ``name``, replacing any existing entry."""
        if name in self._handlers:
            logger.debug("Replacing handler for action %s", name)
        self._handlers[name] = handler

    def action(self, name: str) -> Callable[[ActionHandler], ActionHandler]:
        """Decorator form of ``register``.

        Example::

            registry = ActionRegistry()

            @registry.action("greet")
            def greet(args, ctx):
                return ActionResult.ok(f"hello {args['name']}")
        """

        def decorator(handler: ActionHandler) -> ActionHandler:
            self.register(name, handler)
            return handler

        return decorator

    def get(self, name: str) -> ActionHandler | None:
        return self._handlers.get(name)

    def unregister(self, name: str) -> bool:
        """Remove a handler. Returns whether one was registered."""
        return self._handlers.pop(name, None) is not None

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def copy(self) -> ActionRegistry:
        """Independent registry with the same entries."""
        return ActionRegistry(dict(self._handlers))

    def describe(self) -> dict[str, str]:
        """Action name to the first line of its handler's docstring."""
        summary: dict[str, str] = {}
        for name in self.names():
            doc = inspect.getdoc(self._handlers[name]) or ""
            summary[name] = doc.splitlines()[0] if doc else ""
        return summary

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._handlers)


def _dynamic_handler(name: str) -> ActionHandler:
    """Wrap the global scope's ``dynamic`` capability as an ordinary handler."""

    def handler(args: dict[str, Any], ctx: ActionExecutionContext) -> Any:
        dynamic = ctx.global_scope.dynamic
        assert dynamic is not None
        return dynamic(name, args, ctx.event)

    handler.__doc__ = f"Host-provided dynamic handler for {name}."
    return handler


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable; host callbacks may be sync or async."""
    if inspect.isawaitable(value):
        return await value
    return value


def resolve_handler(
    registry: ActionRegistry, name: str, ctx: ActionExecutionContext
) -> ActionHandler | None:
    """Find the handler for ``name``.

    The registry wins; otherwise the host's ``dynamic`` capability is used
    as a catch-all entry. Returns ``None`` when neither applies.
    """
    handler = registry.get(name)
    if handler is not None:
        return handler
    if ctx.global_scope.dynamic is not None:
        return _dynamic_handler(name)
    return None


def default_registry() -> ActionRegistry:
    """Fresh registry holding every built-in handler."""
    # Deferred: the handlers module imports this one
    from uiflow.runtime.handlers import register_builtin_actions

    registry = ActionRegistry()
    register_builtin_actions(registry)
    return registry
