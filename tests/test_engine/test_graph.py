"""Tests for the Graph model and its builders.

Tests cover:
- Node, router and edge registration
- Duplicate ids and unknown endpoints
- Behavior capability checks
- Value semantics of every builder
- Context helpers and structural queries
"""

import pytest

from avalon.engine import HALT, Graph, NodeKind, add_edge, add_node, add_router, hook
from avalon.exceptions import (
    DuplicateNodeIdError,
    InvalidBehaviorError,
    InvalidNodeOptionsError,
    InvalidRouteTargetError,
    UnknownNodeError,
)
from workflow_helpers import Choose, Increment


class TestGraphNew:
    """Tests for Graph.new()."""

    def test_new_graph_is_empty(self) -> None:
        """Test that a new graph has no nodes, edges or routes."""
        graph = Graph.new()
        assert dict(graph.nodes) == {}
        assert graph.edges == ()
        assert dict(graph.routes) == {}
        assert graph.context == {}

    def test_new_graph_ids_are_unique(self) -> None:
        """Test that every graph gets its own id."""
        assert Graph.new().id != Graph.new().id

    def test_new_graph_keeps_metadata_and_context(self) -> None:
        """Test that metadata and the initial context are stored."""
        graph = Graph.new(metadata={"name": "wf"}, context={"user": "alice"})
        assert graph.metadata == {"name": "wf"}
        assert graph.context == {"user": "alice"}

    def test_new_graph_rejects_non_hook(self) -> None:
        """Test that workflow hooks must be hooks."""
        with pytest.raises(InvalidNodeOptionsError):
            Graph.new(hooks=["not a hook"])


class TestAddNode:
    """Tests for add_node()."""

    def test_add_node_registers_plain_node(self) -> None:
        """Test that a node is registered with the plain kind."""
        behavior = Increment()
        graph = Graph.new().add_node("a", behavior)

        assert list(graph.nodes) == ["a"]
        assert graph.nodes["a"].behavior is behavior
        assert graph.nodes["a"].kind is NodeKind.PLAIN
        assert not graph.is_router("a")

    def test_duplicate_node_is_rejected(self) -> None:
        """Test that registering the same id twice fails and leaves the graph unchanged."""
        first = Graph.new().add_node("a", Increment())

        with pytest.raises(DuplicateNodeIdError) as exc_info:
            first.add_node("a", Increment())

        assert exc_info.value.node_id == "a"
        assert list(first.nodes) == ["a"]

    def test_add_node_returns_new_graph(self) -> None:
        """Test that the original graph is not modified."""
        empty = Graph.new()
        graph = empty.add_node("a", Increment())

        assert graph is not empty
        assert dict(empty.nodes) == {}
        assert graph.id == empty.id

    def test_functional_form(self) -> None:
        """Test the module-level add_node()."""
        graph = add_node(Graph.new(), "a", Increment())
        assert "a" in graph.nodes

    @pytest.mark.parametrize("behavior", [None, Increment, object(), Choose("x")])
    def test_invalid_behavior_is_rejected(self, behavior: object) -> None:
        """Test that behaviors without a callable execute() are rejected."""
        with pytest.raises(InvalidBehaviorError) as exc_info:
            Graph.new().add_node("a", behavior)
        assert exc_info.value.capability == "execute"

    @pytest.mark.parametrize("node_id", ["", HALT])
    def test_reserved_ids_are_rejected(self, node_id: str) -> None:
        """Test that empty ids and the halt sentinel cannot name nodes."""
        with pytest.raises(InvalidNodeOptionsError):
            Graph.new().add_node(node_id, Increment())

    def test_options_are_stored(self) -> None:
        """Test that options and hooks are kept on the node entry."""
        audit = hook(pre_node=lambda ctx, node_id, opts: ctx)
        graph = Graph.new().add_node("a", Increment(), {"pre_hooks": [audit], "retries": 2})

        entry = graph.nodes["a"]
        assert entry.options["retries"] == 2
        assert entry.pre_hooks == (audit,)
        assert entry.post_hooks == ()

    def test_non_hook_in_options_is_rejected(self) -> None:
        """Test that pre_hooks entries must be hooks."""
        with pytest.raises(InvalidNodeOptionsError) as exc_info:
            Graph.new().add_node("a", Increment(), {"pre_hooks": [42]})
        assert "not a hook" in str(exc_info.value)

    def test_hooks_option_must_be_a_list(self) -> None:
        """Test that a single string is not accepted as a hook list."""
        with pytest.raises(InvalidNodeOptionsError):
            Graph.new().add_node("a", Increment(), {"post_hooks": "audit"})


class TestAddEdge:
    """Tests for add_edge()."""

    def test_add_edge_appends_in_order(self) -> None:
        """Test that edges keep insertion order."""
        graph = (
            Graph.new()
            .add_node("a", Increment())
            .add_node("b", Increment())
            .add_node("c", Increment())
            .add_edge("a", "c")
            .add_edge("a", "b")
        )
        assert graph.edges == (("a", "c"), ("a", "b"))
        assert graph.outgoing("a") == ["c", "b"]

    def test_edge_to_halt(self) -> None:
        """Test that HALT is accepted as an edge target."""
        graph = Graph.new().add_node("a", Increment()).add_edge("a", HALT)
        assert graph.outgoing("a") == [HALT]

    def test_duplicate_edge_is_ignored(self) -> None:
        """Test that adding the same edge twice keeps one copy."""
        graph = Graph.new().add_node("a", Increment()).add_node("b", Increment())
        graph = graph.add_edge("a", "b").add_edge("a", "b")
        assert graph.edges == (("a", "b"),)

    @pytest.mark.parametrize(("frm", "to", "missing"), [("x", "a", "x"), ("a", "y", "y")])
    def test_unknown_endpoint(self, frm: str, to: str, missing: str) -> None:
        """Test that both endpoints must be registered."""
        graph = Graph.new().add_node("a", Increment())

        with pytest.raises(UnknownNodeError) as exc_info:
            graph.add_edge(frm, to)

        assert exc_info.value.node_id == missing
        assert graph.edges == ()

    def test_functional_form(self) -> None:
        """Test the module-level add_edge()."""
        graph = Graph.new().add_node("a", Increment()).add_node("b", Increment())
        assert add_edge(graph, "a", "b").edges == (("a", "b"),)


class TestAddRouter:
    """Tests for add_router()."""

    def test_add_router_records_routes(self) -> None:
        """Test that a router is tagged and its route table stored."""
        graph = (
            Graph.new()
            .add_node("yes", Increment())
            .add_router("decide", Choose("ok"), {"ok": "yes", "stop": HALT})
        )

        assert graph.is_router("decide")
        assert graph.nodes["decide"].kind is NodeKind.ROUTER
        assert dict(graph.routes["decide"]) == {"ok": "yes", "stop": HALT}

    def test_unknown_route_target(self) -> None:
        """Test that route targets must already exist."""
        with pytest.raises(InvalidRouteTargetError) as exc_info:
            Graph.new().add_router("decide", Choose("ok"), {"ok": "missing"})

        assert exc_info.value.router_id == "decide"
        assert exc_info.value.targets == ["missing"]

    def test_router_needs_route_method(self) -> None:
        """Test that a plain node behavior cannot be registered as a router."""
        with pytest.raises(InvalidBehaviorError) as exc_info:
            Graph.new().add_router("decide", Increment(), {})
        assert exc_info.value.capability == "route"

    def test_router_id_must_be_unique(self) -> None:
        """Test that a router cannot reuse a node id."""
        graph = Graph.new().add_node("a", Increment())
        with pytest.raises(DuplicateNodeIdError):
            graph.add_router("a", Choose("x"), {"x": HALT})

    def test_route_table_is_read_only(self) -> None:
        """Test that the stored route table cannot be mutated."""
        routes = {"stop": HALT}
        graph = Graph.new().add_router("decide", Choose("stop"), routes)
        routes["other"] = HALT

        assert dict(graph.routes["decide"]) == {"stop": HALT}
        with pytest.raises(TypeError):
            graph.routes["decide"]["other"] = HALT

    def test_functional_form(self) -> None:
        """Test the module-level add_router()."""
        graph = add_router(Graph.new(), "decide", Choose("stop"), {"stop": HALT})
        assert graph.is_router("decide")


class TestContextAndQueries:
    """Tests for context helpers and structural queries."""

    def test_update_context_merges(self) -> None:
        """Test that update_context merges values without touching the original."""
        graph = Graph.new(context={"a": 1})
        updated = graph.update_context({"b": 2}, c=3)

        assert updated.context == {"a": 1, "b": 2, "c": 3}
        assert graph.context == {"a": 1}

    def test_with_context_replaces(self) -> None:
        """Test that with_context replaces the whole context."""
        graph = Graph.new(context={"a": 1}).with_context({"b": 2})
        assert graph.context == {"b": 2}

    def test_roots_in_registration_order(self) -> None:
        """Test that roots are nodes without incoming edges."""
        graph = (
            Graph.new()
            .add_node("a", Increment())
            .add_node("b", Increment())
            .add_node("c", Increment())
            .add_edge("a", "b")
        )
        assert graph.roots() == ["a", "c"]
        assert graph.incoming_counts() == {"a": 0, "b": 1, "c": 0}

    def test_same_structure_ignores_context(self, linear_graph: Graph) -> None:
        """Test that context changes do not change the structure."""
        assert linear_graph.same_structure(linear_graph.update_context(x=1))
        assert not linear_graph.same_structure(linear_graph.add_edge("a", HALT))
