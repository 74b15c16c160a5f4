# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Reading workflow definition files.

A definition goes through three stages, each reporting failures as a
ConfigurationError: the YAML is parsed, ``${VAR}`` and ``${VAR:-default}``
references in string values are substituted from the environment, and the
result is validated against the WorkflowConfig schema.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from avalon.config.schema import WorkflowConfig
from avalon.exceptions import ConfigurationError

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

MAX_ENV_DEPTH = 10


def resolve_env_vars(value: str, max_depth: int = MAX_ENV_DEPTH) -> str:
    """Substitute environment references in ``value``.

    Substituted values may contain further references; they are expanded
    up to ``max_depth`` times.

    Raises:
        ConfigurationError: If a variable without default is unset, or
            references keep expanding past ``max_depth``.
    """

    def lookup(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        if name in os.environ:
            return os.environ[name]
        if default is not None:
            return default
        raise ConfigurationError(
            f"Environment variable '{name}' is not set",
            suggestion=f"Export {name} or write ${{{name}:-default}} in the workflow file",
        )

    for _ in range(max_depth):
        value = ENV_VAR_PATTERN.sub(lookup, value)
        if not ENV_VAR_PATTERN.search(value):
            return value
    raise ConfigurationError(
        f"Environment references in '{value}' are still unresolved after {max_depth} passes",
        suggestion="Look for variables whose values refer back to each other",
    )


def _substitute(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    if isinstance(data, dict):
        return {key: _substitute(item) for key, item in data.items()}
    if isinstance(data, list):
        return [_substitute(item) for item in data]
    return data


class ConfigLoader:
    """Loads WorkflowConfig objects from YAML files or strings."""

    def __init__(self) -> None:
        self._yaml = YAML(typ="safe")

    def load(self, path: str | Path) -> WorkflowConfig:
        """Load the definition stored at ``path``.

        Raises:
            ConfigurationError: If the file is missing or unreadable, or its
                content is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"Workflow file not found: {path}",
                suggestion="Check the path passed on the command line",
            )
        if not path.is_file():
            raise ConfigurationError(
                f"Workflow path is not a file: {path}",
                suggestion="Point at a .yaml file rather than a directory",
            )
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read workflow file '{path}': {e}") from e
        return self.load_string(content, source_path=path)

    def load_string(self, content: str, source_path: Path | None = None) -> WorkflowConfig:
        """Load a definition from YAML text.

        Args:
            content: The YAML document.
            source_path: File the text came from, used in error messages.

        Raises:
            ConfigurationError: If the text is not a valid definition.
        """
        source = str(source_path) if source_path else "<string>"
        data = self._parse(content, source)
        return self._validate(_substitute(data), source)

    def _parse(self, content: str, source: str) -> dict[str, Any]:
        try:
            data = self._yaml.load(content)
        except YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
            raise ConfigurationError(
                f"Invalid YAML syntax in '{source}'{where}: {e}",
                suggestion="Check indentation and quote values containing ':' or '{'",
            ) from e

        if data is None:
            raise ConfigurationError(
                f"Empty workflow file: {source}",
                suggestion="Start the file with a 'workflow:' section",
            )
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid workflow format in '{source}': expected a mapping, "
                f"got {type(data).__name__}",
                suggestion="The top level must hold workflow, nodes, routers and edges keys",
            )
        return data

    def _validate(self, data: dict[str, Any], source: str) -> WorkflowConfig:
        try:
            return WorkflowConfig.model_validate(data)
        except ValidationError as e:
            problems = []
            for err in e.errors():
                loc = ".".join(str(part) for part in err["loc"])
                problems.append((loc, err["msg"]))
            listing = "\n".join(f"  - {loc or '<root>'}: {msg}" for loc, msg in problems)
            raise ConfigurationError(
                f"Workflow validation failed in '{source}':\n{listing}",
                suggestion="Compare the listed fields with the workflow file format",
                field_path=problems[0][0] or None,
            ) from e


def load_config(path: str | Path) -> WorkflowConfig:
    """Load a workflow definition file."""
    return ConfigLoader().load(path)


def load_config_string(content: str, source_path: Path | None = None) -> WorkflowConfig:
    """Load a workflow definition from a string."""
    return ConfigLoader().load_string(content, source_path)
