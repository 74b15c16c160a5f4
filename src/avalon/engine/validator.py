# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Whole-graph well-formedness checks.

Checks run in a fixed order and the first failing one raises:

1. connectivity: every node is an endpoint of some edge
2. single root: exactly one node has no incoming edges
3. reachability: every node is reachable from the root over edges and routes
4. structural edges are acyclic
"""

from __future__ import annotations

import logging

from avalon.engine.graph import HALT, Graph
from avalon.exceptions import (
    CycleError,
    InvalidRouteTargetError,
    MultipleRootsError,
    NoRootError,
    OrphanNodesError,
)

logger = logging.getLogger(__name__)


def validate(graph: Graph) -> Graph:
    """Validate the structure of ``graph``.

    Args:
        graph: The graph to check.

    Returns:
        The same graph, unchanged.

    Raises:
        OrphanNodesError: If nodes are not wired or not reachable from the root.
        NoRootError: If every node has an incoming edge.
        MultipleRootsError: If several nodes have no incoming edge.
        InvalidRouteTargetError: If a route targets a node that does not exist.
        CycleError: If structural edges form a cycle.
    """
    _validate_all_nodes_connected(graph)
    root = find_root(graph)
    _validate_route_targets(graph)
    _validate_reachable(graph, root)
    _validate_acyclic(graph)
    logger.debug(
        "Workflow %s is valid: %d nodes, %d edges, root '%s'",
        graph.id,
        len(graph.nodes),
        len(graph.edges),
        root,
    )
    return graph


def build(graph: Graph) -> Graph:
    """Build a workflow. Building and validating are the same operation."""
    return validate(graph)


def find_root(graph: Graph) -> str:
    """Return the unique node with no incoming edges.

    Raises:
        NoRootError: If there is no such node.
        MultipleRootsError: If there are several.
    """
    roots = graph.roots()
    if not roots:
        raise NoRootError()
    if len(roots) > 1:
        raise MultipleRootsError(roots)
    return roots[0]


def _validate_all_nodes_connected(graph: Graph) -> None:
    wired: set[str] = set()
    for frm, to in graph.edges:
        wired.add(frm)
        if to != HALT:
            wired.add(to)
    orphans = [node_id for node_id in graph.nodes if node_id not in wired]
    if orphans:
        raise OrphanNodesError(orphans)


def _validate_route_targets(graph: Graph) -> None:
    for router_id, table in graph.routes.items():
        invalid = [t for t in table.values() if t != HALT and t not in graph.nodes]
        if invalid:
            raise InvalidRouteTargetError(router_id, invalid)


def _validate_reachable(graph: Graph, root: str) -> None:
    seen = {root}
    stack = [root]
    while stack:
        node_id = stack.pop()
        successors = graph.outgoing(node_id) + list(graph.routes.get(node_id, {}).values())
        for target in successors:
            if target != HALT and target not in seen:
                seen.add(target)
                stack.append(target)
    unreachable = [node_id for node_id in graph.nodes if node_id not in seen]
    if unreachable:
        raise OrphanNodesError(unreachable)


def _validate_acyclic(graph: Graph) -> None:
    # Iterative three-colour DFS over structural edges only.
    white, grey, black = 0, 1, 2
    colour = dict.fromkeys(graph.nodes, white)

    for start in graph.nodes:
        if colour[start] != white:
            continue
        path = [start]
        iterators = [iter(graph.outgoing(start))]
        colour[start] = grey
        while iterators:
            target = next(iterators[-1], None)
            if target is None:
                colour[path.pop()] = black
                iterators.pop()
                continue
            if target == HALT:
                continue
            if colour[target] == grey:
                cycle = path[path.index(target):] + [target]
                raise CycleError(cycle)
            if colour[target] == white:
                colour[target] = grey
                path.append(target)
                iterators.append(iter(graph.outgoing(target)))
