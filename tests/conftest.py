"""Pytest configuration and shared fixtures for Avalon tests.

This module contains fixtures used across multiple test modules.
"""

from pathlib import Path

import pytest

from avalon.engine import HALT, Graph
from workflow_helpers import Record


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def calls() -> list[str]:
    """Shared list that behaviors and hooks append their invocations to."""
    return []


@pytest.fixture
def linear_graph(calls: list[str]) -> Graph:
    """Return a validated-shape graph a -> b -> c."""
    return (
        Graph.new(metadata={"name": "linear"})
        .add_node("a", Record("a", calls))
        .add_node("b", Record("b", calls))
        .add_node("c", Record("c", calls))
        .add_edge("a", "b")
        .add_edge("b", "c")
    )


@pytest.fixture
def halting_graph(calls: list[str]) -> Graph:
    """Return a graph a -> b -> HALT with a second branch a -> c."""
    return (
        Graph.new()
        .add_node("a", Record("a", calls))
        .add_node("b", Record("b", calls))
        .add_node("c", Record("c", calls))
        .add_edge("a", "b")
        .add_edge("a", "c")
        .add_edge("b", HALT)
    )


@pytest.fixture
def sample_workflow_yaml() -> str:
    """Return a minimal valid workflow YAML for testing."""
    return """\
workflow:
  name: test-workflow
  description: A test workflow
  context:
    user: world

nodes:
  - id: greet
    behavior: template
    options:
      key: greeting
      template: "Hello {{ user }}"
  - id: finish
    behavior: set
    options:
      values:
        done: true

edges:
  - [greet, finish]
"""


@pytest.fixture
def tmp_workflow_file(tmp_path: Path, sample_workflow_yaml: str) -> Path:
    """Create a temporary workflow YAML file."""
    workflow_file = tmp_path / "test-workflow.yaml"
    workflow_file.write_text(sample_workflow_yaml)
    return workflow_file
