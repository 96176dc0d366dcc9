"""
Tests for the then/chain executor.

Covers:
- Result normalisation and failure capture
- Then phase ordering and independence from the main result
- Chain phase gating, ordering and context refresh
- Depth guard, valueFromEvent and the dynamic fallback
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from uiflow.config import EngineConfig
from uiflow.core.errors import ActionArgumentError, ChainDepthError, UnknownActionError
from uiflow.runtime.context import ActionExecutionContext, GlobalScope, build_evaluation_context
from uiflow.runtime.executor import ActionExecutor, event_value, run_action
from uiflow.runtime.registry import ActionRegistry, default_registry
from uiflow.runtime.state import ContentScope
from uiflow.specs.actions import parse_action
from uiflow.specs.results import ActionResult


def recording_registry(log: list[str]) -> ActionRegistry:
    """Built-ins plus ``record`` (appends args.label) and ``fail`` (raises)."""
    registry = default_registry()

    @registry.action("record")
    def record(args: dict[str, Any], ctx: ActionExecutionContext) -> ActionResult:
        log.append(args.get("label", ""))
        return ActionResult.ok(args.get("label"))

    @registry.action("fail")
    def fail(args: dict[str, Any], ctx: ActionExecutionContext) -> None:
        log.append("fail")
        raise RuntimeError("handler exploded")

    return registry


@pytest.fixture
def log() -> list[str]:
    return []


@pytest.fixture
def recording(log: list[str]) -> ActionExecutor:
    return ActionExecutor(recording_registry(log))


def when(field: str, value: Any, *actions: Any) -> dict[str, Any]:
    return {
        "condition": {"field": field, "operator": "eq", "value": value},
        "action": list(actions),
    }


def record(label: str) -> dict[str, Any]:
    return {"action": "record", "args": {"label": label}}


# =============================================================================
# Dispatch
# =============================================================================


class TestDispatch:
    @pytest.mark.asyncio
    async def test_none_is_noop(self, executor: ActionExecutor, ctx: ActionExecutionContext) -> None:
        result = await executor.run(None, ctx)
        assert result.success
        assert result.result is None

    @pytest.mark.asyncio
    async def test_unknown_action(self, executor: ActionExecutor, ctx: ActionExecutionContext) -> None:
        result = await executor.run("doesNotExist", ctx)

        assert not result.success
        assert isinstance(result.error, UnknownActionError)
        assert result.error_message == "Unknown action: doesNotExist"

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_failure(
        self, recording: ActionExecutor, ctx: ActionExecutionContext
    ) -> None:
        result = await recording.run("fail", ctx)

        assert not result.success
        assert isinstance(result.error, RuntimeError)
        assert result.error_message == "handler exploded"

    @pytest.mark.asyncio
    async def test_error_context_attached(
        self, executor: ActionExecutor, ctx: ActionExecutionContext
    ) -> None:
        result = await executor.run(
            {"action": "setState", "args": {"componentId": "card-1"}}, ctx
        )

        assert result.error.context is not None
        assert result.error.context.action == "setState"
        assert result.error.context.component_id == "card-1"
        assert result.error.describe().startswith("setState (component=card-1, depth=0)")

    @pytest.mark.asyncio
    async def test_plain_return_value_wrapped(self, ctx: ActionExecutionContext) -> None:
        registry = ActionRegistry()
        registry.register("answer", lambda args, context: 42)

        result = await ActionExecutor(registry).run("answer", ctx)
        assert result == ActionResult.ok(42)

    @pytest.mark.asyncio
    async def test_async_handler(self, ctx: ActionExecutionContext) -> None:
        registry = ActionRegistry()

        async def slow(args: dict[str, Any], context: ActionExecutionContext) -> None:
            return None

        registry.register("slow", slow)
        result = await ActionExecutor(registry).run("slow", ctx)
        assert result.success

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "action",
        [{"args": {}}, {"action": "setState", "args": ["x"]}, {"action": 5}, 42],
    )
    async def test_invalid_wire_action_fails(
        self, executor: ActionExecutor, ctx: ActionExecutionContext, action: Any
    ) -> None:
        result = await executor.run(action, ctx)

        assert not result.success
        assert isinstance(result.error, ActionArgumentError)
        assert result.error_message.startswith("Invalid action: ")

    @pytest.mark.asyncio
    async def test_invalid_then_step_fails_whole_action(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        result = await recording.run({**record("main"), "then": [{"args": {}}]}, ctx)

        assert not result.success
        assert log == []

    @pytest.mark.asyncio
    async def test_args_not_mutated(self, ctx: ActionExecutionContext) -> None:
        registry = ActionRegistry()

        def mutate(args: dict[str, Any], context: ActionExecutionContext) -> None:
            args["added"] = True

        registry.register("mutate", mutate)
        parsed = parse_action({"action": "mutate", "args": {"a": 1}})
        await ActionExecutor(registry).run(parsed, ctx)
        assert parsed.args == {"a": 1}

    @pytest.mark.asyncio
    async def test_run_action_helper(self, ctx: ActionExecutionContext) -> None:
        result = await run_action(
            {"action": "setState", "args": {"key": "GLOBAL.a", "value": 1}}, ctx
        )
        assert result.success
        assert ctx.global_scope.get_state("a") == 1


# =============================================================================
# Then phase
# =============================================================================


class TestThenPhase:
    @pytest.mark.asyncio
    async def test_runs_in_order_after_main(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {**record("main"), "then": [record("a"), record("b")]}
        result = await recording.run(action, ctx)

        assert log == ["main", "a", "b"]
        assert result.result == "main"

    @pytest.mark.asyncio
    async def test_runs_even_when_main_fails(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {"action": "fail", "then": [record("after")]}
        result = await recording.run(action, ctx)

        assert log == ["fail", "after"]
        assert not result.success

    @pytest.mark.asyncio
    async def test_failing_step_does_not_stop_the_rest(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {**record("main"), "then": ["fail", record("last")]}
        result = await recording.run(action, ctx)

        assert log == ["main", "fail", "last"]
        assert result.success

    @pytest.mark.asyncio
    async def test_steps_see_main_result(
        self, recording: ActionExecutor, ctx: ActionExecutionContext
    ) -> None:
        seen: list[Any] = []
        recording.registry.register(
            "capture", lambda args, context: seen.append(context.chain_context)
        )
        await recording.run({**record("main"), "then": ["capture"]}, ctx)

        assert seen == [ActionResult.ok("main")]

    @pytest.mark.asyncio
    async def test_then_runs_before_chains(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {
            **record("main"),
            "then": [record("then")],
            "chains": [when("__success", True, record("chain"))],
        }
        await recording.run(action, ctx)
        assert log == ["main", "then", "chain"]


# =============================================================================
# Chain phase
# =============================================================================


class TestChainPhase:
    @pytest.mark.asyncio
    async def test_success_and_error_branches(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        chains = [
            when("__success", True, record("ok")),
            when("__hasError", True, record("error")),
        ]
        await recording.run({**record("main"), "chains": chains}, ctx)
        assert log == ["main", "ok"]

        log.clear()
        await recording.run({"action": "fail", "chains": chains}, ctx)
        assert log == ["fail", "error"]

    @pytest.mark.asyncio
    async def test_chain_actions_in_order(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {
            **record("main"),
            "chains": [when("__success", True, record("x"), record("y"))],
        }
        await recording.run(action, ctx)
        assert log == ["main", "x", "y"]

    @pytest.mark.asyncio
    async def test_later_chain_sees_earlier_global_write(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {
            **record("main"),
            "chains": [
                when(
                    "__success",
                    True,
                    {"action": "setState", "args": {"key": "GLOBAL.stage", "value": "two"}},
                ),
                when("stage", "two", record("saw stage two")),
            ],
        }
        await recording.run(action, ctx)

        assert log == ["main", "saw stage two"]

    @pytest.mark.asyncio
    async def test_later_chain_sees_latest_result(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {
            **record("main"),
            "chains": [
                when("__success", True, "fail"),
                when("__hasError", True, record("recovered")),
            ],
        }
        await recording.run(action, ctx)

        assert log == ["main", "fail", "recovered"]

    @pytest.mark.asyncio
    async def test_chain_steps_receive_previous_result(
        self, recording: ActionExecutor, ctx: ActionExecutionContext
    ) -> None:
        seen: list[Any] = []
        recording.registry.register(
            "capture", lambda args, context: seen.append(context.chain_context)
        )
        action = {
            **record("main"),
            "chains": [when("__success", True, record("x"), "capture")],
        }
        await recording.run(action, ctx)

        assert seen == [ActionResult.ok("x")]

    @pytest.mark.asyncio
    async def test_returns_main_result(
        self, recording: ActionExecutor, ctx: ActionExecutionContext
    ) -> None:
        action = {**record("main"), "chains": [when("__success", True, "fail")]}
        result = await recording.run(action, ctx)

        assert result.success
        assert result.result == "main"

    @pytest.mark.asyncio
    async def test_unmatched_chains_skipped(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {**record("main"), "chains": [when("__hasError", True, record("never"))]}
        await recording.run(action, ctx)
        assert log == ["main"]

    @pytest.mark.asyncio
    async def test_condition_on_result_payload(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {**record("main"), "chains": [when("__result", "main", record("matched"))]}
        await recording.run(action, ctx)
        assert log == ["main", "matched"]

    @pytest.mark.asyncio
    async def test_malformed_condition_feeds_later_chains(
        self, executor: ActionExecutor, ctx: ActionExecutionContext
    ) -> None:
        action = {
            "action": "setState",
            "args": {"key": "GLOBAL.ran", "value": True},
            "chains": [
                {"condition": {"field": "__success"}, "action": ["logout"]},
                when(
                    "__hasError",
                    True,
                    {"action": "setState", "args": {"key": "GLOBAL.second", "value": True}},
                ),
            ],
        }

        result = await executor.run(action, ctx)

        assert result.success
        assert ctx.global_scope.get_all_state() == {"ran": True, "second": True}

    @pytest.mark.asyncio
    async def test_non_mapping_condition_is_an_error(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        action = {
            **record("main"),
            "chains": [
                {"condition": "always", "action": [record("never")]},
                when("__success", True, record("not after an error")),
                when("__hasError", True, record("handled")),
            ],
        }

        await recording.run(action, ctx)

        assert log == ["main", "handled"]


# =============================================================================
# End to end
# =============================================================================


class TestLoginFlow:
    @pytest.mark.asyncio
    async def test_api_call_then_store_user(
        self, executor: ActionExecutor, ctx: ActionExecutionContext, host: Any
    ) -> None:
        host.api_response = {"user": {"name": "Alice", "id": 7}}
        action = {
            "action": "makeApiCall",
            "args": {"url": "/login", "method": "POST", "body": {"u": "alice"}},
            "then": [
                {"action": "setState", "args": {"key": "GLOBAL.user", "value": "__result.user"}}
            ],
            "chains": [
                when(
                    "__success",
                    True,
                    {"action": "navigate", "args": {"path": "/users/:user.id"}},
                    {"action": "showToast", "args": {"message": "Welcome #{user.name}"}},
                ),
                when("__hasError", True, "error"),
            ],
        }

        result = await executor.run(action, ctx)

        assert result.success
        assert ctx.global_scope.get_state("user") == {"name": "Alice", "id": 7}
        assert host.named("navigate") == ["/users/7"]
        assert host.named("showToast") == [("Welcome Alice", "info")]
        assert host.named("error") == []

    @pytest.mark.asyncio
    async def test_api_failure_takes_error_branch(
        self, executor: ActionExecutor, ctx: ActionExecutionContext, host: Any
    ) -> None:
        host.api_error = ConnectionError("offline")
        action = {
            "action": "makeApiCall",
            "args": {"url": "/login"},
            "chains": [
                when("__success", True, {"action": "navigate", "args": {"path": "/home"}}),
                when("__hasError", True, "error"),
            ],
        }

        result = await executor.run(action, ctx)

        assert not result.success
        assert host.named("navigate") == []
        [(message, _)] = host.named("error")
        assert message == "offline"


# =============================================================================
# Depth, events and dynamic fallback
# =============================================================================


class TestDepthGuard:
    @pytest.mark.asyncio
    async def test_nesting_beyond_limit_fails(
        self, recording: ActionExecutor, ctx: ActionExecutionContext, log: list[str]
    ) -> None:
        executor = ActionExecutor(recording.registry, EngineConfig(max_chain_depth=2))
        action = record("0")
        for level in range(1, 5):
            action = {**record(str(level)), "then": [action]}

        result = await executor.run(action, ctx)

        assert result.success
        assert log == ["4", "3", "2"]

    @pytest.mark.asyncio
    async def test_depth_error_reported(self, ctx: ActionExecutionContext) -> None:
        executor = ActionExecutor(default_registry(), EngineConfig(max_chain_depth=0))
        deeper = ctx.descend()

        result = await executor.run("logout", deeper)

        assert isinstance(result.error, ChainDepthError)
        assert result.error.limit == 0
        assert result.error.depth == 1


class TestValueFromEvent:
    @pytest.mark.asyncio
    async def test_event_value_overrides_arg(
        self, executor: ActionExecutor, ctx: ActionExecutionContext
    ) -> None:
        action = {
            "action": "setState",
            "args": {"key": "GLOBAL.query", "value": "ignored"},
            "valueFromEvent": True,
        }
        await executor.run(action, ctx, event={"target": {"value": "shoes"}})
        assert ctx.global_scope.get_state("query") == "shoes"

    @pytest.mark.parametrize(
        ("event", "expected"),
        [
            ({"target": {"value": "a"}}, "a"),
            ({"target": None}, None),
            ("raw", "raw"),
            ({"other": 1}, {"other": 1}),
        ],
    )
    def test_event_value(self, event: Any, expected: Any) -> None:
        assert event_value(event) == expected

    def test_event_value_from_object(self) -> None:
        class Target:
            value = "typed"

        class Event:
            target = Target()

        assert event_value(Event()) == "typed"


class TestDynamicFallback:
    @pytest.mark.asyncio
    async def test_unknown_name_goes_to_dynamic(self) -> None:
        calls: list[tuple[str, dict[str, Any], Any]] = []

        def dynamic(name: str, args: dict[str, Any], event: Any) -> dict[str, Any]:
            calls.append((name, args, event))
            return {"handled": name}

        context = ActionExecutionContext(
            global_scope=GlobalScope(dynamic=dynamic), content=ContentScope()
        )
        result = await ActionExecutor().run(
            {"action": "trackClick", "args": {"id": 3}}, context, event="click"
        )

        assert result.result == {"handled": "trackClick"}
        assert calls == [("trackClick", {"id": 3}, "click")]

    @pytest.mark.asyncio
    async def test_registry_wins_over_dynamic(self) -> None:
        called: list[str] = []
        context = ActionExecutionContext(
            global_scope=GlobalScope(dynamic=lambda name, args, event: called.append(name))
        )
        await ActionExecutor().run(
            {"action": "setState", "args": {"key": "a", "value": 1}}, context
        )

        assert called == []
        assert context.global_scope.get_state("a") == 1


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_interleaved_read_await_write_is_stale(self) -> None:
        """Two dispatches that read, await, then write both act on the pre-await read."""
        registry = ActionRegistry()

        async def slow_increment(args: dict[str, Any], ctx: ActionExecutionContext) -> int:
            current = ctx.global_scope.get_state("count") or 0
            await asyncio.sleep(0)
            ctx.global_scope.set_state("count", current + 1)
            return current + 1

        registry.register("slowIncrement", slow_increment)
        executor = ActionExecutor(registry)
        context = ActionExecutionContext(global_scope=GlobalScope())

        await asyncio.gather(
            executor.run("slowIncrement", context), executor.run("slowIncrement", context)
        )

        assert context.global_scope.get_state("count") == 1

    @pytest.mark.asyncio
    async def test_synchronous_writes_are_not_torn(self) -> None:
        context = ActionExecutionContext(global_scope=GlobalScope())
        executor = ActionExecutor()
        toggle = {"action": "toggleState", "args": {"key": "GLOBAL.flag"}}

        await asyncio.gather(*(executor.run(toggle, context) for _ in range(4)))

        assert context.global_scope.get_state("flag") is False


class TestEvaluationContext:
    def test_reserved_keys_overlay_state(self) -> None:
        result = ActionResult.fail("boom", result={"x": 1})
        ctx = build_evaluation_context(result, {"__success": "shadowed", "theme": "dark"})

        assert ctx == {
            "theme": "dark",
            "__success": False,
            "__hasError": True,
            "__result": {"x": 1},
            "__error": "boom",
        }

    def test_no_result(self) -> None:
        ctx = build_evaluation_context(None, {})
        assert ctx["__success"] is False
        assert ctx["__hasError"] is False
        assert ctx["__result"] is None
