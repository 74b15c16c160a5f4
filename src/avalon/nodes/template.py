# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Jinja2 rendering against a workflow context.

Used by TemplateNode to produce context values and by ExpressionRouter to
evaluate ``{{ ... }}`` conditions. Compiled templates are cached per
renderer because router conditions are re-evaluated on every loop-back.
"""

from __future__ import annotations

import json
from typing import Any

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError, UndefinedError

from avalon.exceptions import TemplateError

_TRUE_WORDS = frozenset({"true", "1", "yes"})
_FALSE_WORDS = frozenset({"false", "0", "no", "", "none"})


def _to_json(value: Any, indent: int = 2) -> str:
    return json.dumps(value, indent=indent, default=str)


def _or_default(value: Any, fallback: Any = "") -> Any:
    # Unlike Jinja's builtin default(), only None is replaced.
    return fallback if value is None else value


class TemplateRenderer:
    """Render Jinja2 templates with StrictUndefined.

    A reference to a context key that does not exist is an error rather
    than an empty string.

    Example:
        >>> TemplateRenderer().render("Ticket {{ ticket.id }}", {"ticket": {"id": 7}})
        'Ticket 7'
    """

    def __init__(self) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters.update(json=_to_json, default=_or_default)
        self._compiled: dict[str, Template] = {}

    def render(self, template: str, context: dict[str, Any]) -> str:
        """Render ``template`` with the context keys as variables.

        Raises:
            TemplateError: On undefined variables, syntax errors or filter failures.
        """
        try:
            return self._compile(template).render(**context)
        except UndefinedError as e:
            raise TemplateError(
                f"Undefined variable in template: {e}",
                suggestion=f"Ensure {_quoted_name(str(e))} is set in the workflow context",
            ) from e
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"Template syntax error at line {e.lineno}: {e.message}",
                suggestion="Check the template for unbalanced {{ }} or {% %} blocks",
            ) from e
        except Exception as e:
            raise TemplateError(f"Template rendering failed: {e}") from e

    def evaluate_condition(self, expression: str, context: dict[str, Any]) -> bool:
        """Render ``expression`` and read the result as a boolean.

        "true", "1" and "yes" are true; "false", "0", "no", "none" and the
        empty string are false; any other non-empty output is true.
        """
        rendered = self.render(expression, context).strip().lower()
        if rendered in _TRUE_WORDS:
            return True
        if rendered in _FALSE_WORDS:
            return False
        return True

    def _compile(self, template: str) -> Template:
        compiled = self._compiled.get(template)
        if compiled is None:
            compiled = self._compiled[template] = self.env.from_string(template)
        return compiled


def _quoted_name(error_msg: str) -> str:
    # Jinja2 reports undefined names as "'name' is undefined".
    parts = error_msg.split("'")
    return f"'{parts[1]}'" if len(parts) >= 3 else "the variable"
