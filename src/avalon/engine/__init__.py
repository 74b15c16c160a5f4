# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Workflow engine module for Avalon.

This module contains the workflow graph model and builders, the structural
validator, hook chains, the step limiter and the execution state machine.
"""

from avalon.engine.behaviors import Continue, Error, Halt, Node, Router
from avalon.engine.executor import (
    ExecutionResult,
    ExecutionStatus,
    WorkflowExecutor,
    execute,
)
from avalon.engine.graph import HALT, Graph, NodeEntry, NodeKind, add_edge, add_node, add_router
from avalon.engine.hooks import Hook, HookChain, hook
from avalon.engine.limits import StepLimiter
from avalon.engine.plan import ExecutionPlan, ExecutionStep, build_execution_plan
from avalon.engine.validator import build, find_root, validate
from avalon.engine.visualizer import to_mermaid

__all__ = [
    "HALT",
    "Continue",
    "Error",
    "ExecutionPlan",
    "ExecutionResult",
    "ExecutionStatus",
    "ExecutionStep",
    "Graph",
    "Halt",
    "Hook",
    "HookChain",
    "Node",
    "NodeEntry",
    "NodeKind",
    "Router",
    "StepLimiter",
    "WorkflowExecutor",
    "add_edge",
    "add_node",
    "add_router",
    "build",
    "build_execution_plan",
    "execute",
    "find_root",
    "hook",
    "to_mermaid",
    "validate",
]
