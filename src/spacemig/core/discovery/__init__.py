"""
Discovery of local resource definition files.
"""

from spacemig.core.discovery.definitions import (
    DefinitionLoadError,
    load_definition,
    load_definitions,
)
from spacemig.core.discovery.discoverer import discover, match_resource_name, read_component_dirs
from spacemig.core.discovery.models import DiscoveredResource, ResourceKind, ResourceOrigin

__all__ = [
    "DefinitionLoadError",
    "DiscoveredResource",
    "ResourceKind",
    "ResourceOrigin",
    "discover",
    "load_definition",
    "load_definitions",
    "match_resource_name",
    "read_component_dirs",
]
