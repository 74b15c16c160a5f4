# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Static execution plan for dry runs.

Traces every node reachable from the root without executing anything,
recording where each node can go next and which nodes are loop-back
targets of router routes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from avalon.engine.behaviors import behavior_name
from avalon.engine.graph import HALT, Graph
from avalon.engine.validator import find_root


@dataclass
class ExecutionStep:
    """A single step in the execution plan."""

    node_id: str
    """Id of the node."""

    kind: str
    """'plain' or 'router'."""

    behavior: str
    """Display name of the node's behavior."""

    targets: list[dict[str, Any]] = field(default_factory=list)
    """Possible next nodes: {'to': ..., 'label': ...}."""

    is_loop_target: bool = False
    """True if a route loops back to this node."""


@dataclass
class ExecutionPlan:
    """Represents the workflow structure without actually running it.

    Used by the --dry-run flag to display the execution plan.
    """

    workflow_id: str
    """Id of the workflow graph."""

    root: str
    """Node the run starts from."""

    steps: list[ExecutionStep] = field(default_factory=list)
    """Steps in depth-first visiting order."""

    max_steps: int | None = None
    """Step limit configured for the run."""


def build_execution_plan(graph: Graph, max_steps: int | None = None) -> ExecutionPlan:
    """Build an execution plan by tracing the graph from its root.

    Args:
        graph: A validated workflow graph.
        max_steps: Optional step limit shown alongside the plan.

    Returns:
        ExecutionPlan with one step per reachable node.

    Raises:
        NoRootError: If the graph has no root.
        MultipleRootsError: If the graph has several roots.
    """
    root = find_root(graph)
    plan = ExecutionPlan(workflow_id=graph.id, root=root, max_steps=max_steps)

    visited: set[str] = set()
    loop_targets: set[str] = set()
    _trace_path(graph, root, plan, visited, loop_targets, [])

    for step in plan.steps:
        if step.node_id in loop_targets:
            step.is_loop_target = True
    return plan


def _trace_path(
    graph: Graph,
    node_id: str,
    plan: ExecutionPlan,
    visited: set[str],
    loop_targets: set[str],
    path: list[str],
) -> None:
    if node_id == HALT:
        return
    if node_id in path:
        loop_targets.add(node_id)
        return
    if node_id in visited:
        return
    visited.add(node_id)

    entry = graph.nodes[node_id]
    targets: list[dict[str, Any]] = []
    if graph.is_router(node_id):
        for label, target in graph.routes.get(node_id, {}).items():
            targets.append({"to": target, "label": label})
    else:
        for target in graph.outgoing(node_id):
            targets.append({"to": target, "label": None})

    plan.steps.append(
        ExecutionStep(
            node_id=node_id,
            kind=entry.kind.value,
            behavior=behavior_name(entry.behavior),
            targets=targets,
        )
    )

    path.append(node_id)
    for target in targets:
        _trace_path(graph, target["to"], plan, visited, loop_targets, path)
    path.pop()
