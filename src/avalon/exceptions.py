# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Exception hierarchy for Avalon.

Every error raised by Avalon derives from AvalonError, which carries an
optional suggestion shown to the user next to the message.

Structural errors are raised while a workflow graph is being built or
validated. Execution errors describe a node, router or hook that failed
during a run; the executor records them on the returned result instead of
letting them escape.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class AvalonError(Exception):
    """Base exception for all Avalon errors.

    Attributes:
        suggestion: What the user can do about the error, if known.
    """

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        """Initialize an AvalonError.

        Args:
            message: What went wrong.
            suggestion: Optional hint appended when the error is printed.
        """
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        """Format the error message with optional suggestion."""
        msg = super().__str__()
        if self.suggestion:
            msg += f"\n\n💡 Suggestion: {self.suggestion}"
        return msg

    @property
    def message(self) -> str:
        """Return the bare message without the suggestion."""
        return self.args[0] if self.args else ""

    @property
    def error_type(self) -> str:
        """Return the type name for display purposes."""
        return self.__class__.__name__


class ConfigurationError(AvalonError):
    """Raised when a workflow definition file is invalid.

    This includes malformed YAML, missing required fields, unresolved
    environment variables and behaviors that cannot be imported.

    Attributes:
        field_path: Optional path to the invalid field (e.g., 'workflow.limits.max_steps').
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        field_path: str | None = None,
    ) -> None:
        self.field_path = field_path
        super().__init__(message, suggestion)


class TemplateError(AvalonError):
    """Raised when a Jinja2 template or condition cannot be rendered."""

    pass


# Structural errors


class StructuralError(AvalonError):
    """Raised when a workflow graph is malformed.

    Base class for every error detected by the graph builder or the
    validator. A structural error means the graph must not be executed.
    """

    pass


class DuplicateNodeIdError(StructuralError):
    """Raised when a node id is registered twice.

    Attributes:
        node_id: The id that already exists in the graph.
    """

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(
            f"Node '{node_id}' already exists",
            suggestion="Node ids must be unique within a workflow",
        )


class UnknownNodeError(StructuralError):
    """Raised when an edge references a node that is not registered.

    Attributes:
        node_id: The missing node id.
    """

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(
            f"Node '{node_id}' does not exist",
            suggestion="Add the node with add_node() or add_router() before wiring it",
        )


class InvalidBehaviorError(StructuralError):
    """Raised when a behavior does not satisfy the node or router capability.

    Attributes:
        behavior: The rejected behavior object.
        capability: The missing capability ('execute' or 'route').
    """

    def __init__(self, behavior: Any, capability: str, reason: str | None = None) -> None:
        self.behavior = behavior
        self.capability = capability
        detail = reason or f"it has no callable '{capability}' method"
        super().__init__(
            f"Behavior {behavior!r} cannot be registered: {detail}",
            suggestion=f"Pass an object that implements '{capability}()'",
        )


class InvalidNodeOptionsError(StructuralError):
    """Raised when node options are malformed (e.g. hooks that are not hooks)."""

    def __init__(self, node_id: str, reason: str) -> None:
        self.node_id = node_id
        super().__init__(f"Invalid options for node '{node_id}': {reason}")


class InvalidRouteTargetError(StructuralError):
    """Raised when a router declares a route to a node that does not exist.

    Attributes:
        router_id: The router whose route table is invalid.
        targets: The route targets that do not name registered nodes.
    """

    def __init__(self, router_id: str, targets: Sequence[str]) -> None:
        self.router_id = router_id
        self.targets = list(targets)
        super().__init__(
            f"Router '{router_id}' has invalid route targets: {self.targets}",
            suggestion="Register target nodes before the router or route to '$halt'",
        )


class NoRootError(StructuralError):
    """Raised when every node has at least one incoming edge."""

    def __init__(self) -> None:
        super().__init__(
            "Workflow has no root node",
            suggestion="Exactly one node must have no incoming edges",
        )


class MultipleRootsError(StructuralError):
    """Raised when more than one node has no incoming edges.

    Attributes:
        node_ids: The candidate root nodes, in registration order.
    """

    def __init__(self, node_ids: Sequence[str]) -> None:
        self.node_ids = list(node_ids)
        super().__init__(
            f"Workflow has multiple root nodes: {self.node_ids}",
            suggestion="Connect all but one of these nodes to an upstream node",
        )


class OrphanNodesError(StructuralError):
    """Raised when registered nodes are not wired into the graph.

    Attributes:
        node_ids: The orphaned nodes, in registration order.
    """

    def __init__(self, node_ids: Sequence[str]) -> None:
        self.node_ids = list(node_ids)
        super().__init__(
            f"Orphaned nodes: {self.node_ids}",
            suggestion="Wire every node with add_edge() or remove it",
        )


class CycleError(StructuralError):
    """Raised when structural edges form a cycle.

    Attributes:
        cycle: The node ids along the cycle, first node repeated at the end.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            f"Workflow edges form a cycle: {' -> '.join(self.cycle)}",
            suggestion="Use a router route to loop back instead of a structural edge",
        )


# Execution errors


class ExecutionError(AvalonError):
    """Raised when a step of a workflow run fails.

    Base class for execution-related errors. The failing node, the stage
    that produced the error and the original reason are kept so callers
    can tell exactly which step aborted the run.

    Attributes:
        node_id: The node being executed, or None for workflow-scope hooks.
        stage: Where the failure happened (e.g. 'execute', 'route', 'pre_node').
        reason: The original error object or value, uninterpreted.
    """

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        stage: str | None = None,
        reason: Any = None,
        suggestion: str | None = None,
    ) -> None:
        self.node_id = node_id
        self.stage = stage
        self.reason = reason
        super().__init__(message, suggestion)


class RoutingAmbiguityError(ExecutionError):
    """Raised when a router returns something other than Continue, Halt or Error."""

    pass


class MaxStepsError(ExecutionError):
    """Raised when a workflow run exceeds its maximum number of steps.

    This is a safety mechanism against router loop-backs that never
    terminate.

    Attributes:
        steps: The number of steps that were executed.
        max_steps: The configured maximum number of steps.
        history: Node ids visited before the limit was hit.
    """

    def __init__(
        self,
        message: str,
        *,
        steps: int,
        max_steps: int,
        history: list[str] | None = None,
        node_id: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.steps = steps
        self.max_steps = max_steps
        self.history = history or []
        super().__init__(
            message,
            node_id=node_id,
            stage="limits",
            suggestion=suggestion,
        )
