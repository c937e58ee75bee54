"""
Loading discovered definition files into plain dicts.

JSON and YAML definitions are read directly. JavaScript and TypeScript
definitions have to be evaluated by a JS runtime, which spacemig does not
do; they raise DefinitionLoadError so callers can report them per item.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from spacemig.core.api.exceptions import SpacemigError
from spacemig.core.discovery.models import DiscoveredResource

logger = logging.getLogger(__name__)

SCRIPT_EXTENSIONS = frozenset({".js", ".cjs", ".mjs", ".ts"})


class DefinitionLoadError(SpacemigError):
    """Raised when a definition file cannot be turned into a dict."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(message, path=str(path))
        self.path = path

    def __str__(self) -> str:
        return f"{self.path.name}: {self.message}"


def load_definition(resource: DiscoveredResource) -> dict[str, Any]:
    """
    Load one definition file.

    A definition without a ``name`` gets the resource's logical name.

    Raises:
        DefinitionLoadError: If the file is a script, unreadable, not
            valid JSON/YAML, or does not contain a mapping
    """
    path = resource.file_path
    extension = path.suffix.lower()

    if extension in SCRIPT_EXTENSIONS:
        raise DefinitionLoadError(
            path,
            "JavaScript/TypeScript definitions cannot be evaluated; "
            "export it as .json or .yaml",
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DefinitionLoadError(path, f"cannot read file: {e}") from e

    try:
        if extension in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DefinitionLoadError(path, f"invalid definition: {e}") from e

    if not isinstance(data, dict):
        raise DefinitionLoadError(path, "definition must be a mapping")

    data.setdefault("name", resource.name)
    return data


def load_definitions(
    resources: list[DiscoveredResource],
) -> tuple[list[dict[str, Any]], list[DefinitionLoadError]]:
    """
    Load many definitions, collecting failures instead of raising.

    Returns:
        (loaded definitions in input order, load errors)
    """
    loaded: list[dict[str, Any]] = []
    errors: list[DefinitionLoadError] = []

    for resource in resources:
        try:
            loaded.append(load_definition(resource))
        except DefinitionLoadError as e:
            logger.warning("Skipping definition %s", e)
            errors.append(e)

    return loaded, errors


__all__ = ["DefinitionLoadError", "load_definition", "load_definitions"]
