"""
uiflow developer CLI.

Validate, run and inspect serialized actions, templates and conditions
from the command line without a UI host.
"""

from __future__ import annotations

import asyncio
import json
import platform
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from uiflow import __version__
from uiflow.config import EngineConfig, find_config, load_config
from uiflow.core.conditions import evaluate_condition
from uiflow.core.template_lang import extrapolate
from uiflow.logging import get_logger, setup_logging
from uiflow.runtime.context import ActionExecutionContext, GlobalScope, MemoryStorage
from uiflow.runtime.executor import ActionExecutor
from uiflow.runtime.registry import default_registry
from uiflow.runtime.state import ContentScope, InMemoryStateStore
from uiflow.specs.actions import ActionDescriptor, NamedAction, dump_action, parse_action
from uiflow.specs.conditions import parse_condition
from uiflow.specs.results import ActionResult, ApiRequest

app = typer.Typer(
    help="Validate, run and inspect uiflow actions",
    no_args_is_help=True,
)

console = Console()
logger = get_logger("cli")

# Set by the root callback
_config: EngineConfig = EngineConfig()


def get_version() -> str:
    """uiflow version from package metadata."""
    try:
        return version("uiflow")
    except PackageNotFoundError:
        return __version__


def version_callback(value: bool) -> None:
    if value:
        console.print(f"uiflow {get_version()}")
        console.print(
            f"[dim]Python {platform.python_version()} ({platform.python_implementation()})[/dim]"
        )
        raise typer.Exit()


@app.callback()
def main_callback(
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to uiflow.toml. Defaults to the nearest one above the cwd.",
        ),
    ] = None,
    version_flag: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version information",
        ),
    ] = None,
) -> None:
    """uiflow CLI main callback for global options."""
    global _config
    path = config_path or find_config()
    if path is not None:
        try:
            _config = load_config(path)
        except (OSError, ValueError) as e:
            console.print(f"[red]Could not load config {path}: {e}[/red]")
            raise typer.Exit(1) from e
    else:
        _config = EngineConfig()
    setup_logging(_config.log_level, _config.log_dir)
    if path is not None:
        logger.debug("Loaded config from %s", path)


# =============================================================================
# Helpers
# =============================================================================


def _load_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON for {what}: {e}[/red]")
        raise typer.Exit(1) from e


def _load_json_file(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(1) from e
    return _load_json(text, str(path))


def _load_action(path: Path) -> NamedAction | ActionDescriptor:
    data = _load_json_file(path)
    try:
        return parse_action(data)
    except ValidationError as e:
        console.print(f"[red]Invalid action in {path}:[/red]")
        for err in e.errors():
            loc = ".".join(str(part) for part in err["loc"]) or "<root>"
            console.print(f"  {loc}: {err['msg']}", markup=False)
        raise typer.Exit(1) from e


def _condition_errors(action: NamedAction | ActionDescriptor, loc: str) -> list[str]:
    """Chain conditions that will fail when evaluated, as "loc: message" lines."""
    if isinstance(action, NamedAction):
        return []
    errors: list[str] = []
    for index, step in enumerate(action.then):
        errors += _condition_errors(step, f"{loc}.then.{index}")
    for index, chain in enumerate(action.chains):
        chain_loc = f"{loc}.chains.{index}"
        try:
            parse_condition(chain.condition)
        except ValidationError as e:
            errors.append(f"{chain_loc}.condition: {e.errors()[0]['msg']}")
        for step_index, step in enumerate(chain.action):
            errors += _condition_errors(step, f"{chain_loc}.action.{step_index}")
    return errors


def _action_tree(action: NamedAction | ActionDescriptor, tree: Tree) -> None:
    if isinstance(action, NamedAction):
        return
    if action.args:
        tree.add(f"[dim]args:[/dim] {json.dumps(action.args, default=str)}")
    if action.then:
        then_branch = tree.add("[cyan]then[/cyan]")
        for step in action.then:
            _action_tree(step, then_branch.add(step.name))
    for index, chain in enumerate(action.chains):
        condition = json.dumps(chain.condition_wire(), default=str)
        chain_branch = tree.add(f"[magenta]chain {index}[/magenta] [dim]{condition}[/dim]")
        for step in chain.action:
            _action_tree(step, chain_branch.add(step.name))


def _result_to_dict(result: ActionResult) -> dict[str, Any]:
    data: dict[str, Any] = {"success": result.success, "result": result.result}
    if result.error is not None:
        data["error"] = result.error_message
    return data


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


# =============================================================================
# Commands
# =============================================================================


@app.command(name="validate")
def validate_command(
    file: Annotated[Path, typer.Argument(help="JSON file holding one action")],
    output_json: Annotated[
        bool, typer.Option("--json", help="Print the normalized action as JSON")
    ] = False,
) -> None:
    """Check that a file holds a well-formed action."""
    action = _load_action(file)
    errors = _condition_errors(action, "<root>")
    if errors:
        console.print(f"[red]Invalid condition in {file}:[/red]")
        for line in errors:
            console.print(f"  {line}", markup=False)
        raise typer.Exit(1)

    if output_json:
        _print_json(dump_action(action))
        return

    tree = Tree(f"[green]Valid action:[/green] [bold]{action.name}[/bold]")
    _action_tree(action, tree)
    console.print(tree)


@app.command(name="run")
def run_command(
    file: Annotated[Path, typer.Argument(help="JSON file holding one action")],
    state: Annotated[
        str | None, typer.Option("--state", "-s", help="Initial global state as JSON")
    ] = None,
    api_response: Annotated[
        str | None,
        typer.Option("--api-response", help="JSON returned by every makeApiCall"),
    ] = None,
    component_id: Annotated[
        str | None,
        typer.Option("--component-id", help="Default component id for unprefixed keys"),
    ] = None,
) -> None:
    """Execute an action against in-memory scopes and print the outcome."""
    action = _load_action(file)
    initial = _load_json(state, "--state") if state else {}
    if not isinstance(initial, dict):
        console.print("[red]--state must be a JSON object[/red]")
        raise typer.Exit(1)
    response = _load_json(api_response, "--api-response") if api_response else None

    calls: list[dict[str, Any]] = []

    def navigate(path: str) -> None:
        calls.append({"navigate": path})

    def make_api_call(request: ApiRequest) -> Any:
        calls.append({"makeApiCall": request.model_dump()})
        return response

    def show_toast(message: str, toast_type: str) -> None:
        calls.append({"showToast": {"message": message, "type": toast_type}})

    global_scope = GlobalScope(
        state=InMemoryStateStore(initial),
        navigate=navigate,
        make_api_call=make_api_call,
        storage=MemoryStorage(),
        show_toast=show_toast,
    )
    content = ContentScope()
    context = ActionExecutionContext(
        global_scope=global_scope,
        content=content,
        default_component_id=component_id or _config.default_component_id,
    )

    executor = ActionExecutor(default_registry(), _config)
    result = asyncio.run(executor.run(action, context))
    logger.debug("Ran %s: success=%s", action.name, result.success)

    status = "[green]succeeded[/green]" if result.success else "[red]failed[/red]"
    console.print(f"Action [bold]{action.name}[/bold] {status}")
    _print_json(
        {
            "result": _result_to_dict(result),
            "calls": calls,
            "state": {
                "global": global_scope.get_all_state(),
                "content": content.get_all_content_state(),
                "components": {
                    cid: content.get_component_state_store(cid).get_all_state()
                    for cid in content.component_ids()
                },
            },
        }
    )
    if not result.success:
        raise typer.Exit(1)


@app.command(name="render")
def render_command(
    template: Annotated[str, typer.Argument(help="Template with #{...} placeholders")],
    context: Annotated[
        str | None, typer.Option("--context", help="Evaluation context as JSON")
    ] = None,
) -> None:
    """Extrapolate a template against a JSON context."""
    data = _load_json(context, "--context") if context else {}
    console.print(extrapolate(template, data), markup=False, highlight=False)


@app.command(name="check")
def check_command(
    condition: Annotated[str, typer.Argument(help="Condition as JSON")],
    context: Annotated[
        str | None, typer.Option("--context", help="Evaluation context as JSON")
    ] = None,
) -> None:
    """Evaluate a condition against a JSON context."""
    expr = _load_json(condition, "condition")
    data = _load_json(context, "--context") if context else {}
    if not isinstance(expr, dict):
        console.print("[red]Condition must be a JSON object[/red]")
        raise typer.Exit(1)
    try:
        outcome = evaluate_condition(expr, data)
    except ValidationError as e:
        console.print(f"[red]Invalid condition:[/red] {e.error_count()} error(s)")
        raise typer.Exit(1) from e
    console.print("true" if outcome else "false", highlight=False)


@app.command(name="actions")
def actions_command() -> None:
    """List the built-in actions."""
    table = Table(title="Built-in actions")
    table.add_column("Action", style="bold")
    table.add_column("Summary")
    for name, summary in default_registry().describe().items():
        table.add_row(name, summary)
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
