# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Pydantic models for workflow definition files.

This module defines all Pydantic models for validating and parsing
workflow YAML files into a form the graph factory can build from.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

HALT_TARGET = "$halt"


class LimitsConfig(BaseModel):
    """Safety limits for workflow execution."""

    model_config = ConfigDict(extra="forbid")

    max_steps: int = Field(default=1000, ge=1, le=100_000)
    """Maximum number of node visits before the run fails."""


class WorkflowDef(BaseModel):
    """Top-level workflow settings."""

    model_config = ConfigDict(extra="forbid")

    name: str
    """Unique name of the workflow."""

    description: str | None = None
    """Human-readable description."""

    metadata: dict[str, Any] = Field(default_factory=dict)
    """Opaque metadata; handed to workflow hooks as their options."""

    context: dict[str, Any] = Field(default_factory=dict)
    """Initial context for every run."""

    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    """Execution limits."""

    hooks: list[str] = Field(default_factory=list)
    """Workflow-scope hooks as 'module:attr' references."""


class NodeDef(BaseModel):
    """Definition for a plain node."""

    model_config = ConfigDict(extra="forbid")

    id: str
    """Unique node id."""

    behavior: str
    """Built-in behavior name or 'module:attr' reference."""

    description: str | None = None
    """Human-readable description."""

    options: dict[str, Any] = Field(default_factory=dict)
    """Keyword arguments for the behavior constructor."""

    pre_hooks: list[str] = Field(default_factory=list)
    """Hooks run before the node, as 'module:attr' references."""

    post_hooks: list[str] = Field(default_factory=list)
    """Hooks run after the node, as 'module:attr' references."""

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v:
            raise ValueError("Node id cannot be empty")
        if v == HALT_TARGET:
            raise ValueError(f"'{HALT_TARGET}' is reserved and cannot be used as a node id")
        return v


class RouterDef(NodeDef):
    """Definition for a router node."""

    routes: dict[str, str]
    """Outcome label to target node id (or '$halt')."""

    @field_validator("routes")
    @classmethod
    def validate_routes(cls, v: dict[str, str]) -> dict[str, str]:
        if not v:
            raise ValueError("Routers must declare at least one route")
        for label, target in v.items():
            if not target:
                raise ValueError(f"Route '{label}' has an empty target")
        return v


class EdgeDef(BaseModel):
    """A structural edge. Accepts ``[from, to]`` or ``{from: ..., to: ...}``."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    source: str = Field(alias="from")
    """Source node id."""

    target: str = Field(alias="to")
    """Target node id or '$halt'."""

    @model_validator(mode="before")
    @classmethod
    def accept_pair(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError("Edges written as lists must have exactly two entries: [from, to]")
            return {"from": data[0], "to": data[1]}
        return data


class WorkflowConfig(BaseModel):
    """Complete workflow definition file."""

    model_config = ConfigDict(extra="forbid")

    workflow: WorkflowDef
    """Workflow settings."""

    nodes: list[NodeDef] = Field(default_factory=list)
    """Plain nodes."""

    routers: list[RouterDef] = Field(default_factory=list)
    """Router nodes."""

    edges: list[EdgeDef] = Field(default_factory=list)
    """Structural edges, visited in the order given."""

    @model_validator(mode="after")
    def validate_unique_ids(self) -> WorkflowConfig:
        """Ensure node and router ids are unique."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for node in [*self.nodes, *self.routers]:
            if node.id in seen:
                duplicates.append(node.id)
            seen.add(node.id)
        if duplicates:
            raise ValueError(f"Duplicate node ids: {', '.join(duplicates)}")
        if not seen:
            raise ValueError("Workflow must define at least one node or router")
        return self

    def all_nodes(self) -> list[NodeDef]:
        """Nodes and routers in declaration order (plain nodes first)."""
        return [*self.nodes, *self.routers]
