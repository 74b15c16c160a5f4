# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Mermaid flowchart export for workflow graphs.

Plain nodes render as boxes, routers as diamonds, structural edges as
unlabeled arrows and router routes as arrows labeled with their outcome.
Every arrow into HALT points at one shared terminal circle. Output depends
only on node, edge and route order, so the same graph always renders to
the same text.

Node ids are free-form strings, so they never appear as Mermaid ids. Each
node is drawn as ``n<index>`` in registration order and labeled
``<node id>: <behavior>``.
"""

from __future__ import annotations

from avalon.engine.behaviors import behavior_name
from avalon.engine.graph import HALT, Graph, NodeKind

# Generated node ids all start with "n" and a digit, so this cannot collide.
HALT_NODE = "halt((halt))"


def to_mermaid(graph: Graph) -> str:
    """Render ``graph`` as a Mermaid ``flowchart TD`` diagram."""
    ids = {node_id: f"n{index}" for index, node_id in enumerate(graph.nodes)}
    lines = ["flowchart TD"]
    lines.extend(_node_lines(graph, ids))
    lines.extend(f"    {ids[frm]} --> {_target(ids, to)}" for frm, to in graph.edges)
    lines.extend(_route_lines(graph, ids))
    return "\n".join(lines) + "\n"


def _node_lines(graph: Graph, ids: dict[str, str]) -> list[str]:
    lines = []
    for node_id, entry in graph.nodes.items():
        label = _escape(f"{node_id}: {behavior_name(entry.behavior)}")
        if entry.kind is NodeKind.ROUTER:
            lines.append(f'    {ids[node_id]}{{"{label}"}}')
        else:
            lines.append(f'    {ids[node_id]}["{label}"]')
    return lines


def _route_lines(graph: Graph, ids: dict[str, str]) -> list[str]:
    lines = []
    for router_id, table in graph.routes.items():
        for label, target in table.items():
            lines.append(f"    {ids[router_id]} -->|{_escape(label)}| {_target(ids, target)}")
    return lines


def _target(ids: dict[str, str], target: str) -> str:
    return HALT_NODE if target == HALT else ids[target]


def _escape(text: str) -> str:
    return text.replace('"', "#quot;").replace("|", "#124;")
