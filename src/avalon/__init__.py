# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Avalon - a graph-based workflow engine.

Avalon sequences units of work ("nodes") along the edges of a graph, with
routers choosing the next step at run time and hooks wrapping every node
and the workflow as a whole.

Example:
    Build and run a workflow in Python::

        from avalon.engine import HALT, Graph, execute

        graph = (
            Graph.new()
            .add_node("fetch", FetchTicket())
            .add_node("store", StoreTicket())
            .add_edge("fetch", "store")
            .add_edge("store", HALT)
        )
        result = execute(graph)

    Or run a YAML definition from the command line::

        $ avalon run workflow.yaml --input ticket=42

Modules:
    engine: Graph model, builders, validator, hooks and executor.
    nodes: Built-in node and router behaviors.
    config: YAML loading, schema validation and graph construction.
    cli: Command-line interface commands.
    exceptions: Custom exception hierarchy.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
