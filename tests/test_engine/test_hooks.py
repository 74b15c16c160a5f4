"""Tests for hooks and HookChain.

Tests cover:
- Hook base class pass-through defaults
- Function hooks built with hook()
- Sequential context threading and first-failure short-circuit
"""

import pytest

from avalon.engine import Hook, HookChain, hook
from avalon.engine.hooks import FunctionHook, HookFailure, is_hook


class TestHook:
    """Tests for the Hook base class and hook()."""

    def test_base_hook_passes_context_through(self) -> None:
        """Test that every default callback returns the context unchanged."""
        h = Hook()
        ctx = {"a": 1}
        assert h.pre_node(ctx, "n", {}) is ctx
        assert h.post_node(ctx, "n", None, {}) is ctx
        assert h.pre_workflow(ctx, {}) is ctx
        assert h.post_workflow(ctx, None, {}) is ctx

    def test_function_hook_uses_given_callbacks(self) -> None:
        """Test that hook() installs only the callbacks it is given."""
        h = hook(pre_node=lambda ctx, node_id, opts: {**ctx, "seen": node_id})

        assert h.pre_node({}, "fetch", {}) == {"seen": "fetch"}
        assert h.post_node({"x": 1}, "fetch", None, {}) == {"x": 1}
        assert "pre_node" in repr(h)

    def test_function_hook_rejects_unknown_stage(self) -> None:
        """Test that misspelled stages are reported."""
        with pytest.raises(TypeError, match="pre_nod"):
            FunctionHook(pre_nod=lambda ctx: ctx)

    def test_is_hook(self) -> None:
        """Test hook detection for subclasses, duck types and other objects."""
        class DuckHook:
            def post_workflow(self, ctx, result, opts):
                return ctx

        assert is_hook(Hook())
        assert is_hook(DuckHook())
        assert not is_hook(DuckHook)
        assert not is_hook("audit")
        assert not is_hook(None)


class TestHookChain:
    """Tests for HookChain.run()."""

    def test_empty_chain_returns_context(self) -> None:
        """Test that a chain without hooks returns a copy of the context."""
        assert HookChain().run("pre_workflow", {"a": 1}, {}) == {"a": 1}
        assert len(HookChain()) == 0

    def test_context_threads_through_hooks_in_order(self) -> None:
        """Test that each hook sees the previous hook's context."""
        first = hook(pre_node=lambda ctx, node_id, opts: {**ctx, "order": ctx["order"] + ["first"]})
        second = hook(pre_node=lambda ctx, node_id, opts: {**ctx, "order": ctx["order"] + ["second"]})

        result = HookChain([first, second]).run("pre_node", {"order": []}, "n", {})

        assert result == {"order": ["first", "second"]}

    def test_stage_arguments_are_forwarded(self) -> None:
        """Test that post_node receives node id, result and opts."""
        received = []

        def post(ctx, node_id, result, opts):
            received.append((node_id, result, opts))
            return ctx

        HookChain([hook(post_node=post)]).run("post_node", {}, "n", "outcome", {"retries": 1})

        assert received == [("n", "outcome", {"retries": 1})]

    def test_first_failure_stops_chain(self) -> None:
        """Test that a raising hook aborts the chain and later hooks never run."""
        ran = []

        def boom(ctx, opts):
            raise RuntimeError("boom")

        def later(ctx, opts):
            ran.append("later")
            return ctx

        chain = HookChain([hook(pre_workflow=boom), hook(pre_workflow=later)])

        with pytest.raises(HookFailure) as exc_info:
            chain.run("pre_workflow", {}, {})

        assert exc_info.value.stage == "pre_workflow"
        assert isinstance(exc_info.value.error, RuntimeError)
        assert ran == []

    def test_non_mapping_result_fails(self) -> None:
        """Test that a hook must return a mapping."""
        chain = HookChain([hook(pre_workflow=lambda ctx, opts: ["not", "a", "dict"])])

        with pytest.raises(HookFailure, match="expected a context mapping"):
            chain.run("pre_workflow", {}, {})

    def test_hooks_without_stage_are_skipped(self) -> None:
        """Test that duck-typed hooks lacking a stage are skipped."""
        class OnlyPost:
            def post_workflow(self, ctx, result, opts):
                return {**ctx, "done": True}

        chain = HookChain([OnlyPost()])

        assert chain.run("pre_workflow", {"a": 1}, {}) == {"a": 1}
        assert chain.run("post_workflow", {"a": 1}, None, {}) == {"a": 1, "done": True}
