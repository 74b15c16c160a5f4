# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Workflow execution engine for Avalon.

This module provides the WorkflowExecutor class, the traversal state
machine that walks a validated graph from its root:

    Idle -> Running -> Completed | Halted | Failed

Terminal states are returned as an :class:`ExecutionResult`; the executor
never raises for a failed step. Fan-out is sequential: the targets of a
node's outgoing edges run one after another in insertion order, and the
first halt or failure stops the remaining ones.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from avalon.engine.behaviors import Continue, Error, Halt, behavior_name
from avalon.engine.graph import HALT, Graph, NodeEntry, NodeKind
from avalon.engine.hooks import HookChain, HookFailure
from avalon.engine.limits import DEFAULT_MAX_STEPS, StepLimiter
from avalon.engine.validator import find_root, validate
from avalon.exceptions import (
    AvalonError,
    ExecutionError,
    RoutingAmbiguityError,
    StructuralError,
)

logger = logging.getLogger(__name__)


class ExecutionStatus(str, Enum):
    """Terminal state of a workflow run."""

    COMPLETED = "completed"
    HALTED = "halted"
    FAILED = "failed"


@dataclass
class ExecutionResult:
    """Outcome of a workflow run.

    Attributes:
        status: The terminal state.
        graph: The graph as it was when the run stopped, including its context.
        halt_result: The value a router halted with, if any.
        error: The first error encountered when status is FAILED.
        history: Node ids in the order they were visited.
    """

    status: ExecutionStatus
    graph: Graph
    halt_result: Any = None
    error: AvalonError | None = None
    history: list[str] = field(default_factory=list)

    @property
    def context(self) -> dict[str, Any]:
        return self.graph.context

    @property
    def completed(self) -> bool:
        return self.status is ExecutionStatus.COMPLETED

    @property
    def halted(self) -> bool:
        return self.status is ExecutionStatus.HALTED

    @property
    def failed(self) -> bool:
        return self.status is ExecutionStatus.FAILED

    def raise_for_status(self) -> ExecutionResult:
        """Raise the stored error if the run failed, else return self."""
        if self.error is not None:
            raise self.error
        return self


@dataclass
class _RunState:
    graph: Graph
    limits: StepLimiter
    halt_result: Any = None


def _copy_context(context: dict[str, Any]) -> dict[str, Any]:
    """Give a run its own context.

    Values are deep-copied where possible. Values that refuse to be copied
    (locks, open files, provider clients) are shared with the caller.
    """
    copied: dict[str, Any] = {}
    for key, value in context.items():
        try:
            copied[key] = copy.deepcopy(value)
        except Exception as e:
            logger.debug("Sharing context value '%s' with the caller: %s", key, e)
            copied[key] = value
    return copied


class WorkflowExecutor:
    """Walks a workflow graph, applying hooks around every step.

    Example:
        >>> executor = WorkflowExecutor(max_steps=100)
        >>> result = executor.execute(graph)
        >>> result.status
        <ExecutionStatus.COMPLETED: 'completed'>
    """

    def __init__(self, max_steps: int = DEFAULT_MAX_STEPS) -> None:
        """Initialize the WorkflowExecutor.

        Args:
            max_steps: Maximum number of node visits per run.
        """
        if max_steps < 1:
            raise ValueError(f"max_steps must be at least 1, got {max_steps}")
        self.max_steps = max_steps

    def execute(self, graph: Graph) -> ExecutionResult:
        """Run ``graph`` from its root.

        The graph is re-validated first; a structural error fails the run
        before any node or hook is invoked. The run works on its own copy
        of ``graph.context``, so the caller's graph is never modified.
        Runs share no state, so one executor may serve concurrent callers.

        Args:
            graph: The workflow to run.

        Returns:
            ExecutionResult with the terminal status.
        """
        try:
            validate(graph)
            root = find_root(graph)
        except StructuralError as e:
            logger.warning("Refusing to execute malformed workflow %s: %s", graph.id, e.message)
            return ExecutionResult(ExecutionStatus.FAILED, graph, error=e)

        state = _RunState(
            graph.with_context(_copy_context(graph.context)),
            StepLimiter(max_steps=self.max_steps),
        )
        logger.info("Starting workflow %s at root '%s'", graph.id, root)

        try:
            self._run_workflow_hooks(state, "pre_workflow")
            if not self._execute_from(state, root):
                logger.info(
                    "Workflow %s halted after %d steps",
                    graph.id,
                    state.limits.current_step,
                )
                return self._result(ExecutionStatus.HALTED, state)
            self._run_workflow_hooks(state, "post_workflow", state.graph)
        except ExecutionError as e:
            logger.info("Workflow %s failed: %s", graph.id, e.message)
            return self._result(ExecutionStatus.FAILED, state, error=e)

        logger.info(
            "Workflow %s completed after %d steps",
            graph.id,
            state.limits.current_step,
        )
        return self._result(ExecutionStatus.COMPLETED, state)

    def _result(
        self,
        status: ExecutionStatus,
        state: _RunState,
        error: AvalonError | None = None,
    ) -> ExecutionResult:
        return ExecutionResult(
            status=status,
            graph=state.graph,
            halt_result=state.halt_result,
            error=error,
            history=state.limits.history.copy(),
        )

    def _execute_from(self, state: _RunState, root: str) -> bool:
        """Depth-first walk from ``root``.

        Returns:
            True when the traversal is exhausted, False when it halted.

        Raises:
            ExecutionError: On the first failing step.
        """
        pending = [root]
        while pending:
            node_id = pending.pop()
            if node_id == HALT:
                logger.debug("Reached HALT")
                return False

            state.limits.check_step(node_id)
            state.limits.record(node_id)
            entry = state.graph.nodes[node_id]
            logger.debug(
                "Visiting %s node '%s' (%s)",
                entry.kind.value,
                node_id,
                behavior_name(entry.behavior),
            )

            if entry.kind is NodeKind.ROUTER:
                outcome = self._execute_router(state, node_id, entry)
                if isinstance(outcome, Halt):
                    state.halt_result = outcome.result
                    return False
                target = self._resolve_target(state.graph, node_id, outcome.target)
                logger.debug("Router '%s' chose '%s'", node_id, target)
                pending.append(target)
            else:
                self._execute_node(state, node_id, entry)
                # Reversed so the first edge is visited first.
                pending.extend(reversed(state.graph.outgoing(node_id)))
        return True

    def _execute_node(self, state: _RunState, node_id: str, entry: NodeEntry) -> None:
        behavior = entry.behavior
        validate_input = getattr(behavior, "validate_input", None)
        if callable(validate_input):
            verdict = self._call(node_id, "validate_input", validate_input, state.graph)
            if verdict is not None and verdict is not True:
                reason = verdict.reason if isinstance(verdict, Error) else verdict
                raise ExecutionError(
                    f"Node '{node_id}' rejected its input: {reason}",
                    node_id=node_id,
                    stage="validate_input",
                    reason=reason,
                )

        self._run_node_hooks(state, node_id, entry, "pre_node")
        result = self._call(node_id, "execute", behavior.execute, state.graph)
        if not isinstance(result, Graph):
            raise ExecutionError(
                f"Node '{node_id}' returned {type(result).__name__} instead of a Graph",
                node_id=node_id,
                stage="execute",
                reason=result,
                suggestion="execute() must return the (updated) graph it was given",
            )
        if not result.same_structure(state.graph):
            raise ExecutionError(
                f"Node '{node_id}' changed the workflow structure during execution",
                node_id=node_id,
                stage="execute",
                suggestion="Nodes may only change the context; use update_context()",
            )
        state.graph = result
        self._run_node_hooks(state, node_id, entry, "post_node", result)

    def _execute_router(self, state: _RunState, node_id: str, entry: NodeEntry) -> Continue | Halt:
        self._run_node_hooks(state, node_id, entry, "pre_node")
        outcome = self._call(node_id, "route", entry.behavior.route, state.graph)

        if isinstance(outcome, Error):
            raise ExecutionError(
                f"Router '{node_id}' returned an error: {outcome.reason}",
                node_id=node_id,
                stage="route",
                reason=outcome.reason,
            )
        if not isinstance(outcome, (Continue, Halt)):
            raise RoutingAmbiguityError(
                f"Router '{node_id}' returned {outcome!r}; expected Continue, Halt or Error",
                node_id=node_id,
                stage="route",
                reason=outcome,
            )

        self._run_node_hooks(state, node_id, entry, "post_node", outcome)
        return outcome

    @staticmethod
    def _resolve_target(graph: Graph, node_id: str, target: str) -> str:
        """Map a Continue target to a node id or HALT.

        Outcome labels from the router's route table take precedence over
        node ids of the same name.
        """
        table = graph.routes.get(node_id, {})
        if target in table:
            return table[target]
        if target == HALT or target in graph.nodes:
            return target
        raise RoutingAmbiguityError(
            f"Router '{node_id}' continued to '{target}', which is neither a route label "
            f"nor a node",
            node_id=node_id,
            stage="route",
            reason=target,
            suggestion=f"Declared labels: {list(table)}",
        )

    def _run_node_hooks(
        self,
        state: _RunState,
        node_id: str,
        entry: NodeEntry,
        stage: str,
        *result: Any,
    ) -> None:
        hooks = entry.pre_hooks if stage == "pre_node" else entry.post_hooks
        if not hooks:
            return
        try:
            context = HookChain(hooks).run(
                stage, state.graph.context, node_id, *result, entry.options
            )
        except HookFailure as e:
            raise ExecutionError(
                f"{stage} hook failed for node '{node_id}': {e.error}",
                node_id=node_id,
                stage=stage,
                reason=e.error,
            ) from e
        state.graph = state.graph.with_context(context)

    def _run_workflow_hooks(self, state: _RunState, stage: str, *result: Any) -> None:
        if not state.graph.hooks:
            return
        try:
            context = HookChain(state.graph.hooks).run(
                stage, state.graph.context, *result, state.graph.metadata
            )
        except HookFailure as e:
            raise ExecutionError(
                f"{stage} hook failed: {e.error}",
                stage=stage,
                reason=e.error,
            ) from e
        state.graph = state.graph.with_context(context)

    @staticmethod
    def _call(node_id: str, stage: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(
                f"Node '{node_id}' failed during {stage}: {e}",
                node_id=node_id,
                stage=stage,
                reason=e,
            ) from e


def execute(graph: Graph, *, max_steps: int = DEFAULT_MAX_STEPS) -> ExecutionResult:
    """Run ``graph`` with a fresh :class:`WorkflowExecutor`."""
    return WorkflowExecutor(max_steps=max_steps).execute(graph)
