# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Graph factory for loaded workflow definitions.

Turns a WorkflowConfig into a validated Graph: behaviors and hooks are
imported from 'module:attr' references (or looked up among the built-in
behaviors), classes are instantiated with the node's options, and the
nodes, routers and edges are registered through the graph builders.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from avalon.config.loader import load_config
from avalon.config.schema import HALT_TARGET, NodeDef, RouterDef, WorkflowConfig
from avalon.config.validator import validate_workflow_config
from avalon.engine.graph import HALT, Graph
from avalon.engine.validator import validate
from avalon.exceptions import ConfigurationError
from avalon.nodes.builtin import BUILTIN_BEHAVIORS

logger = logging.getLogger(__name__)


def import_reference(ref: str) -> Any:
    """Import the object named by a 'module:attr' reference.

    Raises:
        ConfigurationError: If the module or attribute cannot be found.
    """
    module_name, _, attr_path = ref.partition(":")
    if not module_name or not attr_path:
        raise ConfigurationError(
            f"Invalid reference '{ref}'",
            suggestion="Use the form 'package.module:ClassName'",
        )
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            f"Cannot import module '{module_name}' for '{ref}': {e}",
            suggestion="Check that the module is installed and on PYTHONPATH",
        ) from e
    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise ConfigurationError(
                f"Module '{module_name}' has no attribute '{attr_path}'",
            ) from e
    return obj


def instantiate(ref: str, options: Mapping[str, Any] | None = None, field_path: str | None = None) -> Any:
    """Resolve ``ref`` and instantiate it if it is a class.

    Built-in behavior names are looked up first. Options are passed as
    keyword arguments; options on a non-class reference are an error.

    Raises:
        ConfigurationError: If the reference cannot be resolved or constructed.
    """
    target = BUILTIN_BEHAVIORS.get(ref) or import_reference(ref)
    options = dict(options or {})

    if not inspect.isclass(target):
        if options:
            raise ConfigurationError(
                f"'{ref}' is not a class, so it cannot take options",
                field_path=field_path,
            )
        return target

    try:
        return target(**options)
    except Exception as e:
        raise ConfigurationError(
            f"Failed to construct '{ref}' with options {options}: {e}",
            suggestion="Check the options against the behavior's constructor",
            field_path=field_path,
        ) from e


def build_graph(config: WorkflowConfig, context: Mapping[str, Any] | None = None) -> Graph:
    """Build and validate the graph described by ``config``.

    Args:
        config: A loaded workflow definition.
        context: Values merged over the definition's initial context.

    Returns:
        A validated Graph.

    Raises:
        ConfigurationError: If references are invalid or cannot be imported.
        StructuralError: If the resulting graph is malformed.
    """
    for warning in validate_workflow_config(config, builtins=set(BUILTIN_BEHAVIORS)):
        logger.warning(warning)

    workflow = config.workflow
    metadata = {"name": workflow.name, **workflow.metadata}
    if workflow.description:
        metadata.setdefault("description", workflow.description)

    graph = Graph.new(
        metadata=metadata,
        context={**workflow.context, **(context or {})},
        hooks=[instantiate(ref, field_path="workflow.hooks") for ref in workflow.hooks],
    )

    for node in config.nodes:
        graph = graph.add_node(node.id, _behavior(node, "nodes"), _options(node, "nodes"))

    for router in _router_order(config.routers, {n.id for n in config.nodes}):
        graph = graph.add_router(
            router.id,
            _behavior(router, "routers"),
            {label: _target(t) for label, t in router.routes.items()},
            _options(router, "routers"),
        )

    for edge in config.edges:
        graph = graph.add_edge(edge.source, _target(edge.target))

    return validate(graph)


def load_workflow(path: str | Path, context: Mapping[str, Any] | None = None) -> Graph:
    """Load a YAML workflow definition and build its graph."""
    return build_graph(load_config(path), context=context)


def _behavior(node: NodeDef, section: str) -> Any:
    return instantiate(node.behavior, node.options, field_path=f"{section}.{node.id}.behavior")


def _options(node: NodeDef, section: str) -> dict[str, Any]:
    path = f"{section}.{node.id}"
    return {
        "pre_hooks": [instantiate(ref, field_path=f"{path}.pre_hooks") for ref in node.pre_hooks],
        "post_hooks": [instantiate(ref, field_path=f"{path}.post_hooks") for ref in node.post_hooks],
        "description": node.description,
    }


def _target(target: str) -> str:
    return HALT if target == HALT_TARGET else target


def _router_order(routers: list[RouterDef], registered: set[str]) -> list[RouterDef]:
    """Order routers so that every route target exists when its router is added."""
    registered = set(registered)
    pending = list(routers)
    ordered: list[RouterDef] = []
    while pending:
        ready = [
            r for r in pending
            if all(t == HALT_TARGET or t in registered for t in r.routes.values())
        ]
        if not ready:
            raise ConfigurationError(
                "Routers route to each other in a cycle: "
                + ", ".join(r.id for r in pending),
                suggestion="Break the cycle with a plain node between the routers",
            )
        for router in ready:
            ordered.append(router)
            registered.add(router.id)
            pending.remove(router)
    return ordered
