# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Configuration module for Avalon.

This module handles YAML parsing, Pydantic schema validation,
environment variable resolution, and building graphs from definitions.
"""

from avalon.config.factory import build_graph, import_reference, instantiate, load_workflow
from avalon.config.loader import (
    ConfigLoader,
    load_config,
    load_config_string,
    resolve_env_vars,
)
from avalon.config.schema import (
    EdgeDef,
    LimitsConfig,
    NodeDef,
    RouterDef,
    WorkflowConfig,
    WorkflowDef,
)
from avalon.config.validator import validate_workflow_config

__all__ = [
    # Loader
    "ConfigLoader",
    "load_config",
    "load_config_string",
    "resolve_env_vars",
    # Schema models
    "EdgeDef",
    "LimitsConfig",
    "NodeDef",
    "RouterDef",
    "WorkflowConfig",
    "WorkflowDef",
    # Validator
    "validate_workflow_config",
    # Factory
    "build_graph",
    "import_reference",
    "instantiate",
    "load_workflow",
]
