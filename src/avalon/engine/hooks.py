# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Pre/post hooks at node and workflow granularity.

A hook is an object deriving from :class:`Hook` that overrides any of the
four callbacks below. Each callback receives the current context and
returns the (possibly new) context; raising aborts the enclosing step.

    pre_node(context, node_id, opts)
    post_node(context, node_id, result, opts)
    pre_workflow(context, opts)
    post_workflow(context, result, opts)

Plain functions are adapted with :func:`hook` so that :class:`HookChain`
only ever deals with one representation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Literal

logger = logging.getLogger(__name__)

HookStage = Literal["pre_node", "post_node", "pre_workflow", "post_workflow"]

HOOK_STAGES: tuple[str, ...] = ("pre_node", "post_node", "pre_workflow", "post_workflow")


class Hook:
    """Base class for hooks. Every callback defaults to a pass-through."""

    def pre_node(self, context: dict[str, Any], node_id: str, opts: Mapping[str, Any]) -> dict[str, Any]:
        return context

    def post_node(
        self,
        context: dict[str, Any],
        node_id: str,
        result: Any,
        opts: Mapping[str, Any],
    ) -> dict[str, Any]:
        return context

    def pre_workflow(self, context: dict[str, Any], opts: Mapping[str, Any]) -> dict[str, Any]:
        return context

    def post_workflow(
        self,
        context: dict[str, Any],
        result: Any,
        opts: Mapping[str, Any],
    ) -> dict[str, Any]:
        return context


class FunctionHook(Hook):
    """Hook built from plain callables, one per stage."""

    def __init__(self, **callbacks: Callable[..., dict[str, Any]]) -> None:
        unknown = set(callbacks) - set(HOOK_STAGES)
        if unknown:
            raise TypeError(f"Unknown hook stages: {sorted(unknown)}")
        for stage, fn in callbacks.items():
            if fn is not None:
                setattr(self, stage, fn)
        self._stages = sorted(k for k, v in callbacks.items() if v is not None)

    def __repr__(self) -> str:
        return f"FunctionHook({', '.join(self._stages)})"


def hook(
    *,
    pre_node: Callable[..., dict[str, Any]] | None = None,
    post_node: Callable[..., dict[str, Any]] | None = None,
    pre_workflow: Callable[..., dict[str, Any]] | None = None,
    post_workflow: Callable[..., dict[str, Any]] | None = None,
) -> Hook:
    """Build a hook from plain functions.

    Example:
        >>> audit = hook(pre_node=lambda ctx, node_id, opts: {**ctx, "last": node_id})
    """
    return FunctionHook(
        pre_node=pre_node,
        post_node=post_node,
        pre_workflow=pre_workflow,
        post_workflow=post_workflow,
    )


def is_hook(obj: Any) -> bool:
    """Return True if ``obj`` provides at least one hook callback."""
    if isinstance(obj, Hook):
        return True
    return not isinstance(obj, type) and any(
        callable(getattr(obj, stage, None)) for stage in HOOK_STAGES
    )


class HookFailure(Exception):
    """Internal signal carrying the hook and the exception that aborted a chain.

    The executor converts it into an ExecutionError that names the stage.
    """

    def __init__(self, stage: str, hook: Any, error: BaseException | str) -> None:
        self.stage = stage
        self.hook = hook
        self.error = error
        super().__init__(f"{stage} hook {hook!r} failed: {error}")


class HookChain:
    """Ordered hook list for a single scope.

    Hooks run strictly in order. The context returned by one hook is the
    input of the next; the first failure stops the chain.
    """

    def __init__(self, hooks: Iterable[Any] = ()) -> None:
        self.hooks = tuple(hooks)

    def __len__(self) -> int:
        return len(self.hooks)

    def run(self, stage: HookStage, context: dict[str, Any], *args: Any) -> dict[str, Any]:
        """Run ``stage`` on every hook and return the final context.

        Args:
            stage: Name of the callback to invoke.
            context: Context seen by the first hook.
            *args: Stage-specific arguments following the context.

        Returns:
            The context returned by the last hook.

        Raises:
            HookFailure: If a hook raises or returns something that is not a mapping.
        """
        for h in self.hooks:
            callback = getattr(h, stage, None)
            if callback is None:
                continue
            logger.debug("Running %s hook %r", stage, h)
            try:
                new_context = callback(context, *args)
            except Exception as e:
                raise HookFailure(stage, h, e) from e
            if not isinstance(new_context, Mapping):
                raise HookFailure(
                    stage,
                    h,
                    f"expected a context mapping, got {type(new_context).__name__}",
                )
            context = dict(new_context)
        return context
