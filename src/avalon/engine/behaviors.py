# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Node and router capabilities.

A node behavior is any object with an ``execute(graph)`` method returning
the updated graph. A router behavior is any object with a ``route(graph)``
method returning one of the three routing outcomes defined here.

Example:
    >>> class Greet:
    ...     def execute(self, graph):
    ...         return graph.update_context(greeting="hello")
    >>> class Decide:
    ...     def route(self, graph):
    ...         if graph.context.get("greeting"):
    ...             return Continue("done")
    ...         return Halt("nothing to say")
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from avalon.exceptions import InvalidBehaviorError

if TYPE_CHECKING:
    from avalon.engine.graph import Graph


@runtime_checkable
class Node(Protocol):
    """Capability of a plain workflow node.

    ``execute`` receives the current graph (including its context) and
    returns the updated graph. Raising any exception fails the run.

    ``validate_input`` is optional. When present it is called before the
    node's pre-hooks. Returning None or True accepts the step; raising, or
    returning ``Error(reason)`` or any other value, rejects it.
    """

    def execute(self, graph: Graph) -> Graph: ...


@runtime_checkable
class Router(Protocol):
    """Capability of a router node.

    ``route`` inspects the graph and returns Continue, Halt or Error.
    """

    def route(self, graph: Graph) -> RouteOutcome: ...


@dataclass(frozen=True)
class Continue:
    """Advance to another node.

    ``target`` is an outcome label from the router's route table or a
    node id. Labels are looked up first, so a label that shares its name
    with a node id routes to the label's target. A label resolving to
    ``HALT`` halts the run.
    """

    target: str


@dataclass(frozen=True)
class Halt:
    """Stop the run successfully-but-terminally with a result."""

    result: Any = None


@dataclass(frozen=True)
class Error:
    """Stop the run with a failure reason."""

    reason: Any


RouteOutcome = Continue | Halt | Error


def behavior_name(behavior: Any) -> str:
    """Return the display name of a behavior.

    Uses an explicit ``name`` attribute when the behavior defines one,
    otherwise its class name.
    """
    name = getattr(behavior, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(behavior).__name__


def ensure_node(behavior: Any) -> None:
    """Check that ``behavior`` satisfies the node capability.

    Raises:
        InvalidBehaviorError: If the behavior has no callable ``execute``.
    """
    _ensure_capability(behavior, "execute")


def ensure_router(behavior: Any) -> None:
    """Check that ``behavior`` satisfies the router capability.

    Raises:
        InvalidBehaviorError: If the behavior has no callable ``route``.
    """
    _ensure_capability(behavior, "route")


def _ensure_capability(behavior: Any, capability: str) -> None:
    if behavior is None:
        raise InvalidBehaviorError(behavior, capability, "behavior is None")
    if inspect.isclass(behavior):
        raise InvalidBehaviorError(
            behavior,
            capability,
            "a class was given where an instance is expected",
        )
    if not callable(getattr(behavior, capability, None)):
        raise InvalidBehaviorError(behavior, capability)
