# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Built-in behaviors for Avalon workflows.

This module provides ready-made nodes and routers plus the Jinja2
template renderer they share.
"""

from avalon.nodes.builtin import (
    BUILTIN_BEHAVIORS,
    ExpressionRouter,
    HaltRouter,
    SetContextNode,
    TemplateNode,
)
from avalon.nodes.template import TemplateRenderer

__all__ = [
    "BUILTIN_BEHAVIORS",
    "ExpressionRouter",
    "HaltRouter",
    "SetContextNode",
    "TemplateNode",
    "TemplateRenderer",
]
