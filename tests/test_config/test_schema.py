"""Tests for the workflow definition schema."""

import pytest
from pydantic import ValidationError

from avalon.config import EdgeDef, LimitsConfig, NodeDef, RouterDef, WorkflowConfig


def minimal(**overrides) -> dict:
    data = {
        "workflow": {"name": "wf"},
        "nodes": [{"id": "a", "behavior": "set"}],
    }
    data.update(overrides)
    return data


class TestNodeDef:
    """Tests for NodeDef and RouterDef."""

    def test_defaults(self) -> None:
        """Test optional fields default to empty."""
        node = NodeDef(id="a", behavior="set")
        assert node.options == {}
        assert node.pre_hooks == []
        assert node.post_hooks == []
        assert node.description is None

    @pytest.mark.parametrize("node_id", ["", "$halt"])
    def test_reserved_ids(self, node_id: str) -> None:
        """Test that empty ids and the halt sentinel are rejected."""
        with pytest.raises(ValidationError):
            NodeDef(id=node_id, behavior="set")

    def test_unknown_field_is_rejected(self) -> None:
        """Test that typos in node definitions are caught."""
        with pytest.raises(ValidationError):
            NodeDef(id="a", behavior="set", optins={})

    def test_router_needs_routes(self) -> None:
        """Test that a router without routes is rejected."""
        with pytest.raises(ValidationError, match="at least one route"):
            RouterDef(id="r", behavior="expression", routes={})

    def test_router_route_target_cannot_be_empty(self) -> None:
        """Test that every route needs a target."""
        with pytest.raises(ValidationError, match="empty target"):
            RouterDef(id="r", behavior="expression", routes={"go": ""})


class TestEdgeDef:
    """Tests for EdgeDef."""

    def test_mapping_form(self) -> None:
        """Test the {from, to} form."""
        edge = EdgeDef.model_validate({"from": "a", "to": "$halt"})
        assert (edge.source, edge.target) == ("a", "$halt")

    def test_pair_form(self) -> None:
        """Test the [from, to] form."""
        edge = EdgeDef.model_validate(["a", "b"])
        assert (edge.source, edge.target) == ("a", "b")

    def test_pair_needs_two_entries(self) -> None:
        """Test that lists of the wrong length are rejected."""
        with pytest.raises(ValidationError, match="exactly two"):
            EdgeDef.model_validate(["a", "b", "c"])


class TestWorkflowConfig:
    """Tests for WorkflowConfig."""

    def test_minimal(self) -> None:
        """Test the smallest valid definition."""
        config = WorkflowConfig.model_validate(minimal())
        assert config.workflow.limits == LimitsConfig()
        assert config.workflow.limits.max_steps == 1000
        assert config.routers == []
        assert config.edges == []

    def test_duplicate_ids_across_sections(self) -> None:
        """Test that a router cannot reuse a node id."""
        data = minimal(routers=[{"id": "a", "behavior": "halt", "routes": {"x": "$halt"}}])
        with pytest.raises(ValidationError, match="Duplicate node ids: a"):
            WorkflowConfig.model_validate(data)

    def test_needs_a_node(self) -> None:
        """Test that a workflow without nodes is rejected."""
        with pytest.raises(ValidationError, match="at least one node"):
            WorkflowConfig.model_validate(minimal(nodes=[]))

    @pytest.mark.parametrize("max_steps", [0, 100_001])
    def test_max_steps_bounds(self, max_steps: int) -> None:
        """Test the allowed range of max_steps."""
        data = minimal()
        data["workflow"]["limits"] = {"max_steps": max_steps}
        with pytest.raises(ValidationError):
            WorkflowConfig.model_validate(data)

    def test_all_nodes_order(self) -> None:
        """Test that plain nodes come before routers."""
        data = minimal(routers=[{"id": "r", "behavior": "halt", "routes": {"x": "$halt"}}])
        config = WorkflowConfig.model_validate(data)
        assert [n.id for n in config.all_nodes()] == ["a", "r"]
