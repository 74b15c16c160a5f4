# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CLI module for Avalon.

This module provides the command-line interface using Typer.
"""

from avalon.cli.app import app

__all__ = ["app"]
