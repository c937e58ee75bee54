"""Layered .env support and token lookup.

Two layers of dotenv files feed the process environment:

  user     $XDG_CONFIG_HOME/spacemig/.env
  project  <project>/.env, <project>/.env.local

Later files win over earlier ones, so project values replace user values.
Neither layer touches a variable that was already exported before loading.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

from .loader import get_xdg_config_home

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("SPACEMIG_OAUTH_TOKEN", "STORYBLOK_OAUTH_TOKEN")


def default_user_env_paths() -> list[Path]:
    return [get_xdg_config_home() / "spacemig" / ".env"]


def default_project_env_paths(project_dir: Path) -> list[Path]:
    return [project_dir / ".env", project_dir / ".env.local"]


def merge_env_files(paths: Iterable[Path]) -> dict[str, str]:
    """Read dotenv files in order; a key set by a later file replaces earlier ones."""
    merged: dict[str, str] = {}
    for path in map(Path, paths):
        if not path.is_file():
            continue
        for key, value in dotenv_values(path).items():
            # bare "KEY" lines parse to None
            if key and value is not None:
                merged[key] = value
    return merged


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> list[str]:
    """
    Apply user and project .env files to ``os.environ``.

    Args:
        project_dir: Directory holding the project env files (defaults to cwd)
        user_env_paths: Override the user env file locations
        project_env_paths: Override the project env file locations

    Returns:
        Names of the variables that were set
    """
    if user_env_paths is None:
        user_env_paths = default_user_env_paths()
    if project_env_paths is None:
        project_env_paths = default_project_env_paths(project_dir or Path.cwd())

    layered = merge_env_files([*user_env_paths, *project_env_paths])
    applied = [key for key in layered if key not in os.environ]
    for key in applied:
        os.environ[key] = layered[key]

    if applied:
        logger.debug("Loaded %d variable(s) from .env files", len(applied))
    return applied


def token_from_env() -> str | None:
    """First non-empty Management API token found in the environment."""
    for name in TOKEN_ENV_VARS:
        if value := os.environ.get(name):
            return value
    return None
