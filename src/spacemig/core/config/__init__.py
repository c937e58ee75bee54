"""
Configuration models and loading.

This module provides Pydantic models for spacemig configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    get_xdg_data_home,
    load_config,
)
from .models import (
    ApiConfig,
    DiscoveryConfig,
    ReplicationConfig,
    RetryConfig,
    RunnerConfig,
    SpacemigConfig,
    SyncConfig,
)

__all__ = [
    # Models
    "ApiConfig",
    "DiscoveryConfig",
    "ReplicationConfig",
    "RetryConfig",
    "RunnerConfig",
    "SpacemigConfig",
    "SyncConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "get_xdg_data_home",
    "load_config",
]
