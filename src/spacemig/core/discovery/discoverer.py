"""
Resource definition discovery.

Finds component, datasource and role definition files below a working
directory by file name suffix. Discovery never fails: unreadable
directories are skipped and whatever was found is returned.

Suffix conventions:
    components   hero.sb.js, hero.sb.cjs, hero.sb.ts, hero.sb.json, hero.sb.yaml
    datasources  colors.sb.datasource.js, colors.datasource.json, ...
    roles        editor.sb.roles.js, editor.sb.roles.json, ...

Files whose name starts with "_" are ignored. Components found below a
node_modules directory are reported as external; the other kinds skip
node_modules entirely.

Usage:
    from spacemig.core.discovery import discover, ResourceKind

    for resource in discover(ResourceKind.COMPONENTS, Path.cwd()):
        print(resource.name, resource.file_path)
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from spacemig.core.discovery.models import DiscoveredResource, ResourceKind, ResourceOrigin

logger = logging.getLogger(__name__)

DEFAULT_COMPONENT_DIRS = ["src", "components", "storyblok"]

COMPONENT_CONFIG_FILES = [
    "storyblok.config.js",
    "storyblok.config.cjs",
    "storyblok.config.mjs",
]

SKIPPED_DIRS = frozenset({".git", ".next", "dist"})
DEPENDENCY_DIR = "node_modules"

# Longest suffix first so "x.sb.datasource.js" never matches ".datasource.js"
SUFFIXES: dict[ResourceKind, list[str]] = {
    ResourceKind.COMPONENTS: [
        ".sb.yaml",
        ".sb.json",
        ".sb.cjs",
        ".sb.yml",
        ".sb.js",
        ".sb.ts",
    ],
    ResourceKind.DATASOURCES: [
        ".sb.datasource.json",
        ".sb.datasource.cjs",
        ".sb.datasource.js",
        ".datasource.json",
        ".datasource.cjs",
        ".datasource.js",
    ],
    ResourceKind.ROLES: [
        ".sb.roles.json",
        ".sb.roles.cjs",
        ".sb.roles.js",
        ".sb.roles.ts",
    ],
}

_COMPONENT_DIRS_PATTERN = re.compile(r"componentsDirectories\s*:\s*\[([\s\S]*?)\]")
_QUOTED_PATTERN = re.compile(r"['\"]([^'\"]+)['\"]")


def match_resource_name(kind: ResourceKind, filename: str) -> str | None:
    """
    Return the logical resource name for a file, or None if it does not match.

    Args:
        kind: Resource kind whose suffix family is checked
        filename: Bare file name (no directories)
    """
    if filename.startswith("_"):
        return None

    for suffix in SUFFIXES.get(kind, []):
        if filename.endswith(suffix) and len(filename) > len(suffix):
            name = filename[: -len(suffix)]
            if kind == ResourceKind.DATASOURCES and name.endswith(".sb"):
                name = name[: -len(".sb")]
            return name or None
    return None


def read_component_dirs(working_dir: Path, default: list[str] | None = None) -> list[str]:
    """
    Read custom component directories from the project's storyblok config.

    Only the first config file that exists is read. Any read or parse
    problem falls back to the defaults without raising.
    """
    dirs = list(default or DEFAULT_COMPONENT_DIRS)

    for config_name in COMPONENT_CONFIG_FILES:
        config_path = working_dir / config_name
        try:
            content = config_path.read_text(encoding="utf-8")
        except OSError:
            continue

        match = _COMPONENT_DIRS_PATTERN.search(content)
        if match:
            found = _QUOTED_PATTERN.findall(match.group(1))
            if found:
                dirs = found
        logger.debug("Component directories from %s: %s", config_name, dirs)
        break

    return dirs


def _scan(
    kind: ResourceKind,
    directory: Path,
    external: bool,
    found: list[DiscoveredResource],
) -> None:
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError as e:
        logger.debug("Skipping unreadable directory %s: %s", directory, e)
        return

    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = entry.is_file()
        except OSError:
            continue

        if is_dir:
            if entry.name in SKIPPED_DIRS:
                continue
            if entry.name == DEPENDENCY_DIR and kind != ResourceKind.COMPONENTS:
                continue
            _scan(kind, Path(entry.path), external or entry.name == DEPENDENCY_DIR, found)
        elif is_file:
            name = match_resource_name(kind, entry.name)
            if name is not None:
                found.append(
                    DiscoveredResource(
                        name=name,
                        file_path=Path(entry.path).resolve(),
                        origin=ResourceOrigin.EXTERNAL if external else ResourceOrigin.LOCAL,
                    )
                )


def _scan_root_files(kind: ResourceKind, working_dir: Path, found: list[DiscoveredResource]) -> None:
    try:
        entries = sorted(os.scandir(working_dir), key=lambda e: e.name)
    except OSError:
        return

    for entry in entries:
        try:
            if not entry.is_file():
                continue
        except OSError:
            continue
        name = match_resource_name(kind, entry.name)
        if name is not None:
            found.append(DiscoveredResource(name=name, file_path=Path(entry.path).resolve()))


def discover(
    kind: ResourceKind | str,
    working_dir: Path | str,
    component_dirs: list[str] | None = None,
) -> list[DiscoveredResource]:
    """
    Discover resource definition files of one kind.

    Args:
        kind: components, datasources or roles
        working_dir: Project root to scan
        component_dirs: Default component roots used when the project has
            no storyblok config (default: src, components, storyblok)

    Returns:
        Resources deduplicated by name (first occurrence wins), local
        before external, then sorted by name
    """
    kind = ResourceKind(kind)
    root = Path(working_dir)
    found: list[DiscoveredResource] = []

    if kind == ResourceKind.PLUGINS:
        # plugins are built bundles passed explicitly, not discovered
        return []

    if kind == ResourceKind.COMPONENTS:
        for rel in read_component_dirs(root, component_dirs):
            directory = root / rel
            if directory.is_dir():
                _scan(kind, directory, DEPENDENCY_DIR in Path(rel).parts, found)
        _scan_root_files(kind, root, found)
    else:
        _scan(kind, root, False, found)

    unique: dict[str, DiscoveredResource] = {}
    for resource in found:
        unique.setdefault(resource.name, resource)

    resources = sorted(
        unique.values(),
        key=lambda r: (r.is_external, r.name.casefold(), r.name),
    )
    logger.debug("Discovered %d %s in %s", len(resources), kind.value, root)
    return resources


__all__ = [
    "DEFAULT_COMPONENT_DIRS",
    "SUFFIXES",
    "discover",
    "match_resource_name",
    "read_component_dirs",
]
