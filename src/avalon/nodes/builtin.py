# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Built-in node and router behaviors.

These cover the common glue steps of a workflow so that simple YAML
workflows can run without custom Python code. They are registered by
name in BUILTIN_BEHAVIORS for the configuration loader.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from simpleeval import NameNotDefined, simple_eval

from avalon.engine.behaviors import Continue, Error, Halt, RouteOutcome
from avalon.nodes.template import TemplateRenderer

if TYPE_CHECKING:
    from avalon.engine.graph import Graph


class TemplateNode:
    """Render a Jinja2 template against the context and store the result.

    Example:
        >>> node = TemplateNode(key="greeting", template="Hello {{ user }}")
    """

    def __init__(self, key: str, template: str) -> None:
        self.key = key
        self.template = template
        self.renderer = TemplateRenderer()

    def execute(self, graph: Graph) -> Graph:
        rendered = self.renderer.render(self.template, graph.context)
        return graph.update_context({self.key: rendered})


class SetContextNode:
    """Merge static values into the context."""

    def __init__(self, values: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self.values = {**(values or {}), **kwargs}

    def execute(self, graph: Graph) -> Graph:
        return graph.update_context(self.values)


class ExpressionRouter:
    """Pick the first outcome label whose condition holds.

    Conditions are evaluated in declaration order and may be written in
    two styles:
    1. Jinja2 template expressions: {{ ticket.priority == "high" }}
    2. Arithmetic expressions via simpleeval: score > 7, attempts < 3

    Nested context values are also exposed flattened for simpleeval, so
    ``{"ticket": {"score": 9}}`` can be tested as ``ticket_score > 7``.

    Example:
        >>> router = ExpressionRouter(
        ...     rules={"retry": "attempts < 3", "give_up": "attempts >= 3"},
        ... )
    """

    def __init__(self, rules: Mapping[str, str], default: str | None = None) -> None:
        if not rules and default is None:
            raise ValueError("ExpressionRouter needs at least one rule or a default label")
        self.rules = dict(rules)
        self.default = default
        self.renderer = TemplateRenderer()

    def route(self, graph: Graph) -> RouteOutcome:
        context = dict(graph.context)
        for label, condition in self.rules.items():
            try:
                matched = self._evaluate_condition(condition, context)
            except Exception as e:
                return Error(f"Condition for '{label}' failed: {e}")
            if matched:
                return Continue(label)

        if self.default is not None:
            return Continue(self.default)
        return Error(
            "No matching rule found. Add a default label or a catch-all condition."
        )

    def _evaluate_condition(self, when: str, context: dict[str, Any]) -> bool:
        if "{{" in when and "}}" in when:
            return self.renderer.evaluate_condition(when, context)
        return self._evaluate_arithmetic(when, context)

    def _evaluate_arithmetic(self, expr: str, context: dict[str, Any]) -> bool:
        try:
            return bool(simple_eval(expr, names=self._flatten_context(context)))
        except NameNotDefined as e:
            raise ValueError(f"Unknown variable in expression: {e}") from e

    @staticmethod
    def _flatten_context(context: dict[str, Any]) -> dict[str, Any]:
        flat: dict[str, Any] = {}
        for key, value in context.items():
            flat[key] = value
            if isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    flat[f"{key}_{sub_key}"] = sub_value
        return flat


class HaltRouter:
    """Always halt with a fixed result."""

    def __init__(self, result: Any = None) -> None:
        self.result = result

    def route(self, graph: Graph) -> RouteOutcome:
        return Halt(self.result)


BUILTIN_BEHAVIORS: dict[str, type] = {
    "template": TemplateNode,
    "set": SetContextNode,
    "expression": ExpressionRouter,
    "halt": HaltRouter,
}
