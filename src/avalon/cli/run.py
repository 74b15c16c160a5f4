# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Implementation of the 'avalon run' command.

Helpers for loading and running a workflow file, turning the outcome into
JSON, and rendering a dry-run plan.
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from avalon.config.factory import build_graph
from avalon.config.loader import load_config
from avalon.engine.executor import ExecutionResult, WorkflowExecutor
from avalon.engine.graph import HALT
from avalon.engine.plan import ExecutionPlan, build_execution_plan

SECTION_PREVIEW_CHARS = 500

# Progress output goes to stderr so stdout stays machine-readable
_progress = Console(stderr=True)


def verbose_log(message: str, style: str = "dim") -> None:
    """Print a progress line unless --quiet was given."""
    from avalon.cli.app import is_verbose

    if is_verbose():
        _progress.print(f"[{style}]{escape(message)}[/{style}]")


def verbose_log_section(title: str, content: str, truncate: bool = True) -> None:
    """Print a titled block of progress output.

    Long content is cut to SECTION_PREVIEW_CHARS unless --verbose was given.
    """
    from avalon.cli.app import is_full, is_verbose

    if not is_verbose():
        return
    if truncate and not is_full() and len(content) > SECTION_PREVIEW_CHARS:
        content = content[:SECTION_PREVIEW_CHARS] + "\n... (truncated; --verbose shows everything)"
    _progress.print(Panel(escape(content), title=f"[cyan]{escape(title)}[/cyan]", border_style="dim"))


def verbose_log_timing(operation: str, elapsed: float) -> None:
    """Print how long ``operation`` took."""
    verbose_log(f"⏱ {operation}: {elapsed:.2f}s")


def parse_input_flags(raw_inputs: Iterable[str]) -> dict[str, Any]:
    """Turn repeated ``--input name=value`` flags into a context mapping.

    Raises:
        typer.BadParameter: If a flag has no '=' or an empty name.
    """
    inputs: dict[str, Any] = {}
    for raw in raw_inputs:
        name, sep, value = raw.partition("=")
        name = name.strip()
        if not sep:
            raise typer.BadParameter(f"Input '{raw}' must look like name=value")
        if not name:
            raise typer.BadParameter(f"Input '{raw}' has an empty name")
        inputs[name] = coerce_value(value.strip())
    return inputs


def coerce_value(value: str) -> Any:
    """Interpret a raw input string.

    Anything that parses as JSON (numbers, true/false/null, arrays and
    objects) becomes the parsed value; True/False/Null in any case are
    accepted too. Everything else stays a string.
    """
    lowered = value.lower()
    if lowered in ("true", "false", "null"):
        return {"true": True, "false": False, "null": None}[lowered]
    try:
        return json.loads(value)
    except ValueError:
        return value


def run_workflow(
    workflow_path: Path,
    inputs: dict[str, Any],
    max_steps: int | None = None,
) -> ExecutionResult:
    """Load, build and execute a workflow file.

    Args:
        workflow_path: Path to the workflow YAML file.
        inputs: Values merged over the definition's initial context.
        max_steps: Overrides ``workflow.limits.max_steps`` when given.

    Raises:
        AvalonError: If the workflow cannot be loaded or built. Failures
            during the run are reported on the returned result instead.
    """
    started = time.perf_counter()
    verbose_log(f"Loading workflow: {workflow_path}")

    config = load_config(workflow_path)
    graph = build_graph(config, context=inputs)
    verbose_log_timing("Workflow loaded", time.perf_counter() - started)
    verbose_log(
        f"Workflow '{config.workflow.name}': {len(config.nodes)} nodes, "
        f"{len(config.routers)} routers, {len(config.edges)} edges"
    )
    if inputs:
        verbose_log_section("Inputs", json.dumps(inputs, indent=2, default=str))

    limit = max_steps or config.workflow.limits.max_steps
    verbose_log(f"Running (max {limit} steps)...")
    result = WorkflowExecutor(max_steps=limit).execute(graph)

    verbose_log(f"Visited: {' → '.join(result.history) or 'nothing'}")
    verbose_log_timing("Total", time.perf_counter() - started)
    verbose_log(f"Workflow {result.status.value}", style="red" if result.failed else "green")
    return result


def result_payload(result: ExecutionResult) -> dict[str, Any]:
    """JSON-friendly summary of an execution result."""
    payload: dict[str, Any] = {
        "status": result.status.value,
        "context": result.context,
        "halt_result": result.halt_result,
        "history": result.history,
    }
    if result.error is not None:
        payload["error"] = {
            "type": result.error.error_type,
            "message": result.error.message,
            "node": getattr(result.error, "node_id", None),
            "stage": getattr(result.error, "stage", None),
        }
    return payload


def format_targets(targets: list[dict[str, Any]]) -> str:
    """One line per possible next node of a plan step."""
    if not targets:
        return "[dim]end of branch[/dim]"
    lines = []
    for target in targets:
        to = "[dim]halt[/dim]" if target["to"] == HALT else escape(target["to"])
        label = f" [dim](on {escape(target['label'])})[/dim]" if target.get("label") else ""
        lines.append(f"→ {to}{label}")
    return "\n".join(lines)


def build_dry_run_plan(workflow_path: Path) -> tuple[str, ExecutionPlan]:
    """Load and build a workflow, then trace it without running anything.

    Returns:
        The workflow name and its ExecutionPlan.
    """
    config = load_config(workflow_path)
    plan = build_execution_plan(build_graph(config), max_steps=config.workflow.limits.max_steps)
    return config.workflow.name, plan


def display_execution_plan(plan: ExecutionPlan, name: str, console: Console | None = None) -> None:
    """Render a dry-run plan as a header panel and a step table."""
    out = console if console is not None else Console()

    out.print(
        Panel(
            f"[bold]Workflow:[/bold] {escape(name)}\n"
            f"[bold]Root:[/bold] {escape(plan.root)}\n"
            f"[bold]Max Steps:[/bold] {plan.max_steps or 'default'}",
            title="[cyan]Execution Plan (Dry Run)[/cyan]",
        )
    )

    table = Table(title="Reachable Nodes", show_lines=True)
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Node", style="green")
    table.add_column("Kind")
    table.add_column("Behavior")
    table.add_column("Next")

    for index, step in enumerate(plan.steps, 1):
        node = escape(step.node_id)
        if step.is_loop_target:
            node += " [yellow](loop target)[/yellow]"
        table.add_row(str(index), node, step.kind, escape(step.behavior), format_targets(step.targets))

    out.print(table)
    loops = sum(1 for step in plan.steps if step.is_loop_target)
    out.print(f"\n[dim]Total nodes:[/dim] {len(plan.steps)} | [dim]Loop targets:[/dim] {loops}")
