# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Cross-field validators for workflow definitions.

This module performs reference checks beyond what Pydantic can express
and reports every problem at once, before the graph is built. The graph
validator still runs afterwards and stops at the first structural error.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from avalon.config.schema import HALT_TARGET
from avalon.exceptions import ConfigurationError

if TYPE_CHECKING:
    from avalon.config.schema import WorkflowConfig

REFERENCE_PATTERN = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_][\w.]*$")


def validate_workflow_config(config: WorkflowConfig, builtins: set[str] | None = None) -> list[str]:
    """Check node references across the definition.

    Args:
        config: The WorkflowConfig to validate.
        builtins: Names accepted as built-in behaviors.

    Returns:
        A list of warning messages (non-fatal issues).

    Raises:
        ConfigurationError: If any reference is invalid.
    """
    errors: list[str] = []
    warnings: list[str] = []
    builtins = builtins or set()

    node_ids = [n.id for n in config.all_nodes()]
    known = set(node_ids)
    available = ", ".join(node_ids)

    for i, edge in enumerate(config.edges):
        if edge.source not in known:
            errors.append(f"Edge {i} starts at unknown node '{edge.source}'. Available: {available}")
        if edge.target != HALT_TARGET and edge.target not in known:
            errors.append(
                f"Edge {i} targets unknown node '{edge.target}'. "
                f"Use '{HALT_TARGET}' to terminate or one of: {available}"
            )

    for router in config.routers:
        for label, target in router.routes.items():
            if target != HALT_TARGET and target not in known:
                errors.append(
                    f"Router '{router.id}' route '{label}' targets unknown node '{target}'"
                )
        route_targets = set(router.routes.values())
        for edge in config.edges:
            if edge.source == router.id and edge.target not in route_targets:
                warnings.append(
                    f"Router '{router.id}' has an edge to '{edge.target}' that none of "
                    f"its routes can reach"
                )

    for node in config.all_nodes():
        if node.behavior not in builtins and not REFERENCE_PATTERN.match(node.behavior):
            errors.append(
                f"Node '{node.id}' behavior '{node.behavior}' is neither a built-in "
                f"({', '.join(sorted(builtins))}) nor a 'module:attr' reference"
            )
        for ref in [*node.pre_hooks, *node.post_hooks]:
            if not REFERENCE_PATTERN.match(ref):
                errors.append(f"Node '{node.id}' hook '{ref}' is not a 'module:attr' reference")

    for ref in config.workflow.hooks:
        if not REFERENCE_PATTERN.match(ref):
            errors.append(f"Workflow hook '{ref}' is not a 'module:attr' reference")

    if errors:
        raise ConfigurationError(
            "Workflow definition validation failed:\n  - " + "\n  - ".join(errors),
            suggestion="Every problem is listed above; fix them all before running again",
        )

    return warnings
