"""
Data models for resource discovery.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ResourceKind(str, Enum):
    """Kinds of resource definitions that can be synced into a space."""

    COMPONENTS = "components"
    DATASOURCES = "datasources"
    ROLES = "roles"
    PLUGINS = "plugins"


class ResourceOrigin(str, Enum):
    """Where a discovered definition lives relative to the project."""

    LOCAL = "local"
    EXTERNAL = "external"


class DiscoveredResource(BaseModel):
    """
    A resource definition file found on disk.

    Example:
        >>> DiscoveredResource(name="hero", file_path=Path("/p/src/hero.sb.js"))
        DiscoveredResource(name='hero', ...)
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Logical name (file name without the suffix)")
    file_path: Path = Field(description="Absolute path of the definition file")
    origin: ResourceOrigin = Field(
        default=ResourceOrigin.LOCAL,
        description="EXTERNAL when found below a dependency directory",
    )

    @property
    def is_external(self) -> bool:
        return self.origin == ResourceOrigin.EXTERNAL
