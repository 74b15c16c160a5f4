# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Entry point for running avalon as a module.

Usage:
    python -m avalon
"""

from avalon.cli.app import app


def main() -> None:
    """Main entry point for the avalon CLI."""
    app()


if __name__ == "__main__":
    main()
