# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Typer application definition for the Avalon CLI.

Defines the `avalon` Typer app, its global flags and the run, validate and
diagram commands. Command bodies live in the run and validate modules.
"""

from __future__ import annotations

import contextvars
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from avalon import __version__

app = typer.Typer(
    name="avalon",
    help="Avalon - Build, validate and run graph workflows defined in YAML.",
    add_completion=False,
    no_args_is_help=True,
)

# Errors and notices go to stderr; results go to stdout
console = Console(stderr=True)
output_console = Console()

# Progress output is on unless --quiet is given
verbose_mode: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "verbose_mode", default=True
)

# --verbose: untruncated progress output and DEBUG logging
full_mode: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "full_mode", default=False
)


def is_verbose() -> bool:
    """Return False when --quiet was given."""
    return verbose_mode.get()


def is_full() -> bool:
    """Return True when --verbose was given."""
    return full_mode.get()


def format_error(error: Exception) -> Panel:
    """Render an exception as a red panel.

    Shows the first line of the message, the failing node and stage for
    execution errors, and the suggestion when there is one.
    """
    from avalon.exceptions import AvalonError, ExecutionError

    content = Text()
    message = error.message if isinstance(error, AvalonError) else str(error)
    content.append(message.split("\n")[0], style="bold red")

    if isinstance(error, ExecutionError) and error.node_id:
        content.append("\n\n")
        content.append("📍 Node: ", style="yellow")
        content.append(error.node_id, style="cyan")
        if error.stage:
            content.append(f" ({error.stage})", style="dim")

    if isinstance(error, AvalonError) and error.suggestion:
        content.append("\n\n")
        content.append("💡 Suggestion: ", style="green")
        content.append(error.suggestion, style="white")

    error_type = error.error_type if isinstance(error, AvalonError) else type(error).__name__

    return Panel(
        content,
        title=f"[bold red]❌ {error_type}[/bold red]",
        border_style="red",
        padding=(1, 2),
    )


def print_error(error: Exception) -> None:
    """Print a formatted error to stderr."""
    console.print(format_error(error))


def version_callback(value: bool) -> None:
    """Print the version for --version and stop."""
    if value:
        output_console.print(f"Avalon v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-V",
            help="Show full details and engine debug logs.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Hide progress output.",
        ),
    ] = False,
) -> None:
    """Avalon - Build, validate and run graph workflows defined in YAML."""
    full_mode.set(verbose)
    verbose_mode.set(not quiet)
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )


WorkflowArgument = Annotated[
    Path,
    typer.Argument(
        help="Path to the workflow YAML file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
]


@app.command()
def run(
    workflow: WorkflowArgument,
    raw_inputs: Annotated[
        list[str] | None,
        typer.Option(
            "--input",
            "-i",
            help="Initial context values in name=value format. Can be repeated.",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show execution plan without running the workflow.",
        ),
    ] = False,
    max_steps: Annotated[
        int | None,
        typer.Option(
            "--max-steps",
            min=1,
            help="Override the maximum number of node visits.",
        ),
    ] = None,
) -> None:
    """Run a workflow from a YAML file.

    Execute the workflow graph defined in the specified YAML file. Inputs
    are merged into the initial context. The final status and context are
    printed as JSON; the exit code is 1 if the run failed.

    \b
    Examples:
        avalon run workflow.yaml
        avalon run workflow.yaml --input ticket=42
        avalon run workflow.yaml -i user=alice -i retries=3
        avalon run workflow.yaml --dry-run
    """
    from avalon.cli.run import (
        build_dry_run_plan,
        display_execution_plan,
        parse_input_flags,
        result_payload,
        run_workflow,
    )

    if dry_run:
        try:
            name, plan = build_dry_run_plan(workflow)
        except Exception as e:
            print_error(e)
            raise typer.Exit(code=1) from None
        display_execution_plan(plan, name, output_console)
        return

    inputs = parse_input_flags(raw_inputs) if raw_inputs else {}

    try:
        result = run_workflow(workflow, inputs, max_steps=max_steps)
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    output_console.print_json(json.dumps(result_payload(result), default=str))

    if result.failed:
        print_error(result.error)
        raise typer.Exit(code=1)


@app.command()
def validate(workflow: WorkflowArgument) -> None:
    """Validate a workflow YAML file without executing it.

    Checks the workflow file for:
    - Valid YAML syntax and schema structure
    - Importable behaviors and hooks
    - Known edge endpoints and route targets
    - A single root, no orphans and acyclic edges

    \b
    Examples:
        avalon validate workflow.yaml
    """
    from avalon.cli.validate import display_validation_success, validate_workflow

    is_valid, graph = validate_workflow(workflow, output_console)

    if is_valid and graph is not None:
        display_validation_success(graph, workflow, output_console)
    else:
        raise typer.Exit(code=1)


@app.command()
def diagram(
    workflow: WorkflowArgument,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write the diagram to this file instead of stdout.",
        ),
    ] = None,
) -> None:
    """Export a workflow as a Mermaid flowchart.

    \b
    Examples:
        avalon diagram workflow.yaml
        avalon diagram workflow.yaml -o workflow.mmd
    """
    from avalon.config.factory import load_workflow
    from avalon.engine.visualizer import to_mermaid

    try:
        text = to_mermaid(load_workflow(workflow))
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    if output is None:
        typer.echo(text, nl=False)
        return

    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Diagram written to[/green] {escape(str(output))}")
