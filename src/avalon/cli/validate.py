# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Implementation of the 'avalon validate' command.

Loads and builds a workflow file without running it, then reports either
the first problem found or a summary of the graph.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from avalon.config.factory import build_graph
from avalon.config.loader import load_config
from avalon.engine.behaviors import behavior_name
from avalon.engine.graph import HALT, Graph, NodeKind
from avalon.engine.validator import find_root
from avalon.exceptions import AvalonError, ConfigurationError


def validate_workflow(
    workflow_path: Path,
    console: Console | None = None,
) -> tuple[bool, Graph | None]:
    """Load and build a workflow file, printing any error.

    Loads the definition, imports its behaviors and builds the graph,
    reporting any error encountered along the way.

    Args:
        workflow_path: Path to the workflow YAML file.
        console: Optional Rich console for output.

    Returns:
        A tuple of (is_valid, graph_or_none).
    """
    output_console = console if console is not None else Console()

    try:
        graph = build_graph(load_config(workflow_path))
        return True, graph
    except AvalonError as e:
        display_validation_error(e, workflow_path, output_console)
        return False, None


def display_validation_error(
    error: AvalonError,
    workflow_path: Path,
    console: Console,
) -> None:
    """Print the error, the file and any field path or suggestion in a panel."""
    content = f"[bold red]{error.error_type}[/bold red]\n\n"
    content += f"[dim]File:[/dim] {workflow_path}\n\n"
    content += escape(error.message)

    if isinstance(error, ConfigurationError) and error.field_path:
        content += f"\n\n[dim]Field:[/dim] {error.field_path}"

    if error.suggestion:
        content += f"\n\n[yellow]💡 Suggestion:[/yellow] {escape(error.suggestion)}"

    console.print(
        Panel(
            content,
            title="[red]Validation Failed[/red]",
            border_style="red",
        )
    )


def display_validation_success(
    graph: Graph,
    workflow_path: Path,
    console: Console,
) -> None:
    """Display validation success with a workflow summary.

    Args:
        graph: The validated workflow graph.
        workflow_path: Path to the workflow file.
        console: Rich console for output.
    """
    router_count = sum(1 for e in graph.nodes.values() if e.kind is NodeKind.ROUTER)
    halt_count = sum(1 for _, to in graph.edges if to == HALT) + sum(
        1 for table in graph.routes.values() for to in table.values() if to == HALT
    )
    hooked = sum(1 for e in graph.nodes.values() if e.pre_hooks or e.post_hooks)

    patterns = []
    if router_count:
        patterns.append("routing")
    if any(len(graph.outgoing(node_id)) > 1 for node_id in graph.nodes):
        patterns.append("fan-out")
    if hooked or graph.hooks:
        patterns.append("hooks")

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Name", str(graph.metadata.get("name", "")))
    if graph.metadata.get("description"):
        table.add_row("Description", str(graph.metadata["description"]))
    table.add_row("File", str(workflow_path))
    table.add_row("Root", find_root(graph))
    table.add_row("Nodes", str(len(graph.nodes) - router_count))
    table.add_row("Routers", str(router_count))
    table.add_row("Edges", str(len(graph.edges)))
    table.add_row("Halt Points", str(halt_count))
    if patterns:
        table.add_row("Patterns", ", ".join(patterns))

    console.print(
        Panel(
            table,
            title="[green]Validation Successful[/green]",
            border_style="green",
        )
    )

    node_table = Table(title="Nodes", show_lines=True)
    node_table.add_column("Id", style="cyan")
    node_table.add_column("Kind", width=8)
    node_table.add_column("Behavior")
    node_table.add_column("Next")

    for node_id, entry in graph.nodes.items():
        if entry.kind is NodeKind.ROUTER:
            targets = [f"{label} → {to}" for label, to in graph.routes[node_id].items()]
        else:
            targets = graph.outgoing(node_id)
        next_str = ", ".join(targets[:3]) if targets else "[dim]none[/dim]"
        if len(targets) > 3:
            next_str += f" (+{len(targets) - 3} more)"
        node_table.add_row(node_id, entry.kind.value, behavior_name(entry.behavior), next_str)

    console.print(node_table)
