# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Workflow graph model and its validating builders.

A :class:`Graph` is a value. ``add_node``, ``add_edge`` and ``add_router``
each return a new graph or raise a :class:`~avalon.exceptions.StructuralError`;
the graph they were called on is never modified.

Example:
    >>> graph = (
    ...     Graph.new(metadata={"name": "greeting"})
    ...     .add_node("greet", Greet())
    ...     .add_node("store", Store())
    ...     .add_edge("greet", "store")
    ...     .add_edge("store", HALT)
    ... )
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from avalon.engine.behaviors import ensure_node, ensure_router
from avalon.engine.hooks import is_hook
from avalon.exceptions import (
    DuplicateNodeIdError,
    InvalidNodeOptionsError,
    InvalidRouteTargetError,
    UnknownNodeError,
)

HALT = "$halt"
"""Sentinel target ending a branch successfully-but-terminally."""

_HOOK_OPTIONS = ("pre_hooks", "post_hooks")


class NodeKind(str, Enum):
    """Static capability tag fixed at registration time."""

    PLAIN = "plain"
    ROUTER = "router"


@dataclass(frozen=True)
class NodeEntry:
    """A registered node: its behavior, its options and its kind."""

    behavior: Any
    options: Mapping[str, Any] = field(default_factory=dict)
    kind: NodeKind = NodeKind.PLAIN

    @property
    def pre_hooks(self) -> tuple[Any, ...]:
        return tuple(self.options.get("pre_hooks", ()))

    @property
    def post_hooks(self) -> tuple[Any, ...]:
        return tuple(self.options.get("post_hooks", ()))


@dataclass(frozen=True)
class Graph:
    """Nodes, edges and route tables of a workflow plus its run context.

    Attributes:
        id: Unique identifier assigned on creation.
        nodes: Read-only mapping of node id to NodeEntry.
        edges: Ordered (from_id, to_id) pairs; to_id may be HALT.
        routes: Read-only mapping of router id to {outcome_label: target}.
        metadata: Opaque mapping, handed to workflow hooks as their opts.
        hooks: Workflow-scope hooks.
        context: Mapping threaded through a single run.
    """

    id: str
    nodes: Mapping[str, NodeEntry] = field(default_factory=lambda: MappingProxyType({}))
    edges: tuple[tuple[str, str], ...] = ()
    routes: Mapping[str, Mapping[str, str]] = field(default_factory=lambda: MappingProxyType({}))
    metadata: Mapping[str, Any] = field(default_factory=dict)
    hooks: tuple[Any, ...] = ()
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        *,
        metadata: Mapping[str, Any] | None = None,
        context: Mapping[str, Any] | None = None,
        hooks: Iterable[Any] = (),
    ) -> Graph:
        """Create an empty graph with a fresh id.

        Args:
            metadata: Optional workflow metadata.
            context: Optional initial context for runs.
            hooks: Workflow-scope hooks (pre_workflow / post_workflow).

        Raises:
            InvalidNodeOptionsError: If a workflow hook is not a hook.
        """
        hooks = tuple(hooks)
        _check_hooks("<workflow>", "hooks", hooks)
        return cls(
            id=str(uuid.uuid4()),
            metadata=dict(metadata or {}),
            context=dict(context or {}),
            hooks=hooks,
        )

    # Builders

    def add_node(self, node_id: str, behavior: Any, options: Mapping[str, Any] | None = None) -> Graph:
        """Register a plain node.

        Raises:
            DuplicateNodeIdError: If ``node_id`` is already registered.
            InvalidBehaviorError: If ``behavior`` has no callable ``execute``.
            InvalidNodeOptionsError: If hook options are malformed.
        """
        self._check_new_id(node_id)
        ensure_node(behavior)
        entry = NodeEntry(behavior, _freeze_options(node_id, options), NodeKind.PLAIN)
        return replace(self, nodes=_with(self.nodes, node_id, entry))

    def add_edge(self, from_id: str, to_id: str) -> Graph:
        """Append the edge ``from_id -> to_id``.

        ``to_id`` may be :data:`HALT`. Adding an edge that already exists
        returns the graph unchanged.

        Raises:
            UnknownNodeError: If an endpoint is not registered.
        """
        if from_id not in self.nodes:
            raise UnknownNodeError(from_id)
        if to_id != HALT and to_id not in self.nodes:
            raise UnknownNodeError(to_id)
        edge = (from_id, to_id)
        if edge in self.edges:
            return self
        return replace(self, edges=self.edges + (edge,))

    def add_router(
        self,
        node_id: str,
        behavior: Any,
        routes: Mapping[str, str],
        options: Mapping[str, Any] | None = None,
    ) -> Graph:
        """Register a router node and its route table.

        Raises:
            DuplicateNodeIdError: If ``node_id`` is already registered.
            InvalidBehaviorError: If ``behavior`` has no callable ``route``.
            InvalidRouteTargetError: If a route target is neither HALT nor a node.
        """
        self._check_new_id(node_id)
        ensure_router(behavior)
        invalid = [t for t in routes.values() if t != HALT and t not in self.nodes]
        if invalid:
            raise InvalidRouteTargetError(node_id, invalid)
        entry = NodeEntry(behavior, _freeze_options(node_id, options), NodeKind.ROUTER)
        return replace(
            self,
            nodes=_with(self.nodes, node_id, entry),
            routes=_with(self.routes, node_id, MappingProxyType(dict(routes))),
        )

    # Context

    def with_context(self, context: Mapping[str, Any]) -> Graph:
        """Return a graph sharing this structure with ``context`` replaced."""
        return replace(self, context=dict(context))

    def update_context(self, values: Mapping[str, Any] | None = None, **kwargs: Any) -> Graph:
        """Return a graph whose context is this context merged with ``values``."""
        merged = dict(self.context)
        merged.update(values or {})
        merged.update(kwargs)
        return replace(self, context=merged)

    # Queries

    def is_router(self, node_id: str) -> bool:
        return self.nodes[node_id].kind is NodeKind.ROUTER

    def outgoing(self, node_id: str) -> list[str]:
        """Edge targets of ``node_id`` in insertion order (HALT included)."""
        return [to for frm, to in self.edges if frm == node_id]

    def incoming_counts(self) -> dict[str, int]:
        counts = {node_id: 0 for node_id in self.nodes}
        for _, to in self.edges:
            if to in counts:
                counts[to] += 1
        return counts

    def roots(self) -> list[str]:
        """Nodes with zero incoming edges, in registration order."""
        return [node_id for node_id, n in self.incoming_counts().items() if n == 0]

    def same_structure(self, other: Graph) -> bool:
        """Return True if ``other`` has the same nodes, edges and routes."""
        return (
            self.nodes == other.nodes
            and self.edges == other.edges
            and self.routes == other.routes
        )

    def _check_new_id(self, node_id: str) -> None:
        if not isinstance(node_id, str) or not node_id or node_id == HALT:
            raise InvalidNodeOptionsError(
                str(node_id), f"node ids must be non-empty strings other than '{HALT}'"
            )
        if node_id in self.nodes:
            raise DuplicateNodeIdError(node_id)


def add_node(graph: Graph, node_id: str, behavior: Any, options: Mapping[str, Any] | None = None) -> Graph:
    """Functional form of :meth:`Graph.add_node`."""
    return graph.add_node(node_id, behavior, options)


def add_edge(graph: Graph, from_id: str, to_id: str) -> Graph:
    """Functional form of :meth:`Graph.add_edge`."""
    return graph.add_edge(from_id, to_id)


def add_router(
    graph: Graph,
    node_id: str,
    behavior: Any,
    routes: Mapping[str, str],
    options: Mapping[str, Any] | None = None,
) -> Graph:
    """Functional form of :meth:`Graph.add_router`."""
    return graph.add_router(node_id, behavior, routes, options)


def _with(mapping: Mapping[str, Any], key: str, value: Any) -> Mapping[str, Any]:
    updated = dict(mapping)
    updated[key] = value
    return MappingProxyType(updated)


def _freeze_options(node_id: str, options: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if options is None:
        return MappingProxyType({})
    if not isinstance(options, Mapping):
        raise InvalidNodeOptionsError(node_id, f"expected a mapping, got {type(options).__name__}")
    frozen = dict(options)
    for key in _HOOK_OPTIONS:
        if key in frozen:
            hooks = frozen[key]
            if isinstance(hooks, (str, bytes)) or not isinstance(hooks, Sequence):
                raise InvalidNodeOptionsError(node_id, f"'{key}' must be a list of hooks")
            _check_hooks(node_id, key, hooks)
            frozen[key] = tuple(hooks)
    return MappingProxyType(frozen)


def _check_hooks(node_id: str, key: str, hooks: Sequence[Any]) -> None:
    for h in hooks:
        if not is_hook(h):
            raise InvalidNodeOptionsError(node_id, f"'{key}' entry {h!r} is not a hook")
