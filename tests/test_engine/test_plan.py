"""Tests for the dry-run execution plan."""

import pytest

from avalon.engine import HALT, Continue, Graph, build_execution_plan
from avalon.exceptions import MultipleRootsError
from workflow_helpers import Choose, Increment


class TestExecutionPlan:
    """Tests for build_execution_plan()."""

    def test_linear_plan(self, linear_graph: Graph) -> None:
        """Test that a chain yields one step per node in order."""
        plan = build_execution_plan(linear_graph, max_steps=20)

        assert plan.root == "a"
        assert plan.workflow_id == linear_graph.id
        assert plan.max_steps == 20
        assert [s.node_id for s in plan.steps] == ["a", "b", "c"]
        assert plan.steps[0].targets == [{"to": "b", "label": None}]
        assert plan.steps[-1].targets == []
        assert plan.steps[0].behavior == "a"
        assert plan.steps[0].kind == "plain"

    def test_router_targets_come_from_routes(self) -> None:
        """Test that router steps list their labeled routes and loop targets are marked."""
        graph = (
            Graph.new()
            .add_node("work", Increment())
            .add_node("done", Increment())
            .add_router("again", Choose(Continue("loop")), {"loop": "work", "exit": "done", "stop": HALT})
            .add_edge("work", "again")
            .add_edge("again", "done")
        )

        plan = build_execution_plan(graph)
        steps = {s.node_id: s for s in plan.steps}

        assert [s.node_id for s in plan.steps] == ["work", "again", "done"]
        assert steps["again"].kind == "router"
        assert steps["again"].behavior == "Choose"
        assert steps["again"].targets == [
            {"to": "work", "label": "loop"},
            {"to": "done", "label": "exit"},
            {"to": HALT, "label": "stop"},
        ]
        assert steps["work"].is_loop_target
        assert not steps["done"].is_loop_target

    def test_diamond_is_not_a_loop(self) -> None:
        """Test that a shared successor is listed once and not marked as a loop."""
        graph = Graph.new()
        for node_id in "abcd":
            graph = graph.add_node(node_id, Increment())
        graph = graph.add_edge("a", "b").add_edge("a", "c").add_edge("b", "d").add_edge("c", "d")

        plan = build_execution_plan(graph)

        assert [s.node_id for s in plan.steps] == ["a", "b", "d", "c"]
        assert not any(s.is_loop_target for s in plan.steps)

    def test_plan_requires_single_root(self) -> None:
        """Test that a graph with several roots cannot be planned."""
        graph = Graph.new().add_node("a", Increment()).add_node("b", Increment())
        with pytest.raises(MultipleRootsError):
            build_execution_plan(graph)
