"""
Management API access.
"""

from spacemig.core.api.client import DEFAULT_BASE_URL, ManagementClient, SpaceId
from spacemig.core.api.exceptions import ConfigurationError, SpacemigError, TransportError
from spacemig.core.api.retry import RetryPolicy

__all__ = [
    "DEFAULT_BASE_URL",
    "ConfigurationError",
    "ManagementClient",
    "RetryPolicy",
    "SpaceId",
    "SpacemigError",
    "TransportError",
]
