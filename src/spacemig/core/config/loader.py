"""
Layered configuration for spacemig.

Layers, lowest first: model defaults, the user file
(``$XDG_CONFIG_HOME/spacemig/config.json``), the project file
(``<project>/.spacemig.json``) and ``SPACEMIG_*`` environment variables.
Every layer is a partial dict; they are merged key by key and validated
once into a SpacemigConfig.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import SpacemigConfig

logger = logging.getLogger(__name__)

_config_cache: SpacemigConfig | None = None

# env var -> (path into the config dict, smallest accepted value or None for text)
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], int | None]] = {
    "SPACEMIG_API_URL": (("api", "base_url"), None),
    "SPACEMIG_MAX_RETRIES": (("api", "retry", "max_retries"), 0),
    "SPACEMIG_FETCH_BATCH_SIZE": (("replication", "fetch_batch_size"), 1),
    "SPACEMIG_CREATE_BATCH_SIZE": (("replication", "create_batch_size"), 1),
    "SPACEMIG_SYNC_BATCH_SIZE": (("sync", "batch_size"), 1),
}


def _xdg_dir(variable: str, *fallback: str) -> Path:
    if value := os.environ.get(variable):
        return Path(value)
    return Path.home().joinpath(*fallback)


def get_xdg_config_home() -> Path:
    return _xdg_dir("XDG_CONFIG_HOME", ".config")


def get_xdg_data_home() -> Path:
    return _xdg_dir("XDG_DATA_HOME", ".local", "share")


def get_user_config_path() -> Path:
    return get_xdg_config_home() / "spacemig" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    return (cwd or Path.cwd()) / ".spacemig.json"


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """
    Merge partial config dicts; later layers win.

    Nested dicts are merged recursively, any other value is replaced
    as a whole. The inputs are left untouched.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = merge_layers(current, value)
            elif isinstance(value, dict):
                merged[key] = merge_layers(value)
            else:
                merged[key] = value
    return merged


def read_config_file(path: Path) -> dict[str, Any] | None:
    """
    Read one JSON config layer.

    A missing file is silently skipped. A file that cannot be parsed or
    does not hold an object is skipped with a warning so that a broken
    user file never blocks a run.
    """
    if not path.is_file():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring config file %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not an object", path)
        return None
    return data


def env_layer() -> dict[str, Any]:
    """Build the config layer contributed by ``SPACEMIG_*`` variables."""
    layer: dict[str, Any] = {}

    for env_name, (path, minimum) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name, "").strip()
        if not raw:
            continue

        value: str | int = raw
        if minimum is not None:
            try:
                value = int(raw)
            except ValueError:
                logger.warning("Ignoring %s=%r: not a number", env_name, raw)
                continue
            if value < minimum:
                logger.warning("Ignoring %s=%s: must be at least %d", env_name, value, minimum)
                continue

        *parents, leaf = path
        section = layer
        for name in parents:
            section = section.setdefault(name, {})
        section[leaf] = value

    return layer


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> SpacemigConfig:
    """
    Load and validate the merged configuration.

    Args:
        project_dir: Directory holding ``.spacemig.json`` (defaults to cwd)
        use_cache: Reuse the result of an earlier call

    Raises:
        ValidationError: If the merged layers are not a valid config
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    file_layers = [
        layer
        for layer in (
            read_config_file(get_user_config_path()),
            read_config_file(get_project_config_path(project_dir)),
        )
        if layer
    ]
    merged = merge_layers(*file_layers, env_layer())

    config = SpacemigConfig.model_validate(merged)
    logger.debug("Loaded config with %d file layer(s)", len(file_layers))
    _config_cache = config
    return config


def clear_cache() -> None:
    """Forget the cached config; the next load_config() reads the files again."""
    global _config_cache
    _config_cache = None
