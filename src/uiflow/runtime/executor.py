"""
Chain/sequence executor.

One dispatch moves through::

    Dispatched -> handler ran (ok | failed) -> ThenPhase -> ChainPhase -> Done

- ThenPhase runs every ``then`` action in order, regardless of the main
  result. A failing step is logged and the next one still runs.
- ChainPhase walks ``chains`` in order. Each condition is evaluated against
  a flat context seeded with the main result (``__success``, ``__hasError``,
  ``__result``, ``__error``) plus a global state snapshot. After every
  chained action the context is refreshed from that action's result, so a
  later chain sees what an earlier one did.
- The dispatch returns the main action's result.

Nothing raised by a handler, host callback or condition escapes ``run``, and
wire data of no valid shape comes back as a failed result.

Concurrency: dispatches are single-threaded asyncio. Awaitables returned by
handlers and callbacks are awaited in place; there are no locks and no
cancellation. A handler that reads state, awaits, then writes can act on a
stale read if another dispatch wrote in between.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from pydantic import ValidationError

from uiflow.config import EngineConfig
from uiflow.core.conditions import evaluate_condition
from uiflow.core.errors import (
    ActionArgumentError,
    ChainDepthError,
    ErrorContext,
    UIFlowError,
    UnknownActionError,
)
from uiflow.logging import log_with_context
from uiflow.runtime.context import ActionExecutionContext, build_evaluation_context
from uiflow.runtime.registry import ActionRegistry, default_registry, maybe_await, resolve_handler
from uiflow.specs.actions import (
    ActionDescriptor,
    ConditionalChain,
    NamedAction,
    parse_action,
)
from uiflow.specs.conditions import parse_condition
from uiflow.specs.results import ActionResult

logger = logging.getLogger(__name__)

Action = NamedAction | ActionDescriptor


def event_value(event: Any) -> Any:
    """Value carried by a UI event: ``event.target.value`` or the event itself."""
    if isinstance(event, Mapping):
        target = event.get("target")
        if target is None and "target" not in event:
            return event
    else:
        if not hasattr(event, "target"):
            return event
        target = event.target

    if isinstance(target, Mapping):
        return target.get("value")
    return getattr(target, "value", None)


class ActionExecutor:
    """
    Dispatches serializable actions and their then/chain continuations.

    Example:
        executor = ActionExecutor(default_registry())
        result = await executor.run(
            {"action": "setState", "args": {"key": "GLOBAL.theme", "value": "dark"}},
            ActionExecutionContext(global_scope=GlobalScope()),
        )
    """

    def __init__(
        self,
        registry: ActionRegistry | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.config = config or EngineConfig()

    async def run(
        self,
        action: Action | str | Mapping[str, Any] | None,
        context: ActionExecutionContext,
        event: Any = None,
        chain_context: ActionResult | None = None,
    ) -> ActionResult:
        """Dispatch ``action`` and its continuations.

        Args:
            action: Tagged action model, or its wire form. ``None`` is a no-op.
            context: Scopes and capabilities for this dispatch.
            event: Triggering UI event, if any.
            chain_context: Result of the action this one follows, if any.

        Returns:
            The main action's result. Wire data of no valid shape gives a
            failed result carrying an ``ActionArgumentError``.
        """
        if action is None:
            return ActionResult(success=True)

        try:
            parsed = parse_action(action)
        except ValidationError as e:
            error = ActionArgumentError(f"Invalid action: {_first_error(e)}")
            log_with_context(logger, logging.WARNING, error.describe(), {"action": action})
            return ActionResult.fail(error)

        if event is not None:
            context = replace(context, event=event)
        if chain_context is not None:
            context = context.with_chain(chain_context)
        return await self._dispatch(parsed, context)

    # -- Dispatch --

    async def _dispatch(self, action: Action, ctx: ActionExecutionContext) -> ActionResult:
        name = action.name
        err_ctx = ErrorContext(action=name, depth=ctx.depth)

        if ctx.depth > self.config.max_chain_depth:
            error = ChainDepthError(ctx.depth, self.config.max_chain_depth, err_ctx)
            log_with_context(
                logger,
                logging.WARNING,
                error.describe(),
                {"action": name, "depth": ctx.depth},
            )
            return ActionResult.fail(error)

        result = await self._invoke(action, ctx, err_ctx)

        if isinstance(action, ActionDescriptor):
            await self._run_then(action, ctx, result)
            await self._run_chains(action, ctx, result)

        return result

    async def _invoke(
        self, action: Action, ctx: ActionExecutionContext, err_ctx: ErrorContext
    ) -> ActionResult:
        name = action.name
        args: dict[str, Any] = {}
        if isinstance(action, ActionDescriptor):
            args = dict(action.args)
            if action.value_from_event:
                args["value"] = event_value(ctx.event)
        component_id = args.get("componentId")
        if isinstance(component_id, str):
            err_ctx.component_id = component_id

        handler = resolve_handler(self.registry, name, ctx)
        if handler is None:
            logger.debug("No handler for action %s", name)
            return ActionResult.fail(UnknownActionError(name, err_ctx))

        logger.debug("Dispatching %s", err_ctx.format())
        try:
            outcome = await maybe_await(handler(args, ctx))
        except UIFlowError as e:
            if e.context is None:
                e.context = err_ctx
            log_with_context(logger, logging.WARNING, e.describe(), {"action": name})
            return ActionResult.fail(e)
        except Exception as e:
            log_with_context(
                logger,
                logging.WARNING,
                f"Handler for {name} raised {type(e).__name__}: {e}",
                {"action": name, "depth": ctx.depth},
            )
            return ActionResult.fail(e)

        if isinstance(outcome, ActionResult):
            return outcome
        if outcome is None:
            return ActionResult(success=True)
        return ActionResult.ok(outcome)

    # -- Then phase --

    async def _run_then(
        self, action: ActionDescriptor, ctx: ActionExecutionContext, main: ActionResult
    ) -> None:
        child_ctx = ctx.descend(main)
        for step in action.then:
            step_result = await self._safe_dispatch(step, child_ctx)
            if not step_result.success:
                logger.warning(
                    "then-step %s after %s failed: %s",
                    step.name,
                    action.name,
                    step_result.error_message,
                )

    # -- Chain phase --

    async def _run_chains(
        self, action: ActionDescriptor, ctx: ActionExecutionContext, main: ActionResult
    ) -> None:
        latest = main
        eval_ctx = build_evaluation_context(latest, ctx.global_scope.get_all_state())

        for index, chain in enumerate(action.chains):
            try:
                matched = evaluate_condition(parse_condition(chain.condition), eval_ctx)
            except Exception as e:
                logger.warning(
                    "Chain %d of %s: condition failed: %s", index, action.name, e
                )
                latest = ActionResult.fail(e)
                eval_ctx = build_evaluation_context(latest, ctx.global_scope.get_all_state())
                continue

            if not matched:
                continue

            latest = await self._run_chain_actions(chain, ctx, latest, action.name, index)
            eval_ctx = build_evaluation_context(latest, ctx.global_scope.get_all_state())

    async def _run_chain_actions(
        self,
        chain: ConditionalChain,
        ctx: ActionExecutionContext,
        latest: ActionResult,
        parent: str,
        index: int,
    ) -> ActionResult:
        for step in chain.action:
            latest = await self._safe_dispatch(step, ctx.descend(latest))
            if not latest.success:
                logger.warning(
                    "Chain %d of %s: %s failed: %s",
                    index,
                    parent,
                    step.name,
                    latest.error_message,
                )
        return latest

    async def _safe_dispatch(self, action: Action, ctx: ActionExecutionContext) -> ActionResult:
        try:
            return await self._dispatch(action, ctx)
        except Exception as e:
            logger.warning("Nested dispatch of %s raised: %s", action.name, e, exc_info=True)
            return ActionResult.fail(e)


async def run_action(
    action: Action | str | Mapping[str, Any] | None,
    context: ActionExecutionContext,
    event: Any = None,
    chain_context: ActionResult | None = None,
    registry: ActionRegistry | None = None,
    config: EngineConfig | None = None,
) -> ActionResult:
    """Dispatch one action with a throwaway ``ActionExecutor``."""
    return await ActionExecutor(registry, config).run(action, context, event, chain_context)


def _first_error(error: ValidationError) -> str:
    detail = error.errors()[0]
    loc = ".".join(str(part) for part in detail["loc"]) or "<root>"
    return f"{loc}: {detail['msg']}"
