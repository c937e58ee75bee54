"""
spacemig - cross-space content migration and resource sync.

Copies stories (with their folder hierarchy) between spaces of a hosted
content-management backend and reconciles locally authored component,
datasource, role and plugin definitions against a space's remote state.
"""

__version__ = "0.4.0"

# Re-export core models for convenience
from spacemig.core.content.models import ContentRecord, ContentTreeNode
from spacemig.core.discovery.models import DiscoveredResource, ResourceKind
from spacemig.core.replicate.models import CopyProgress, CopyResult
from spacemig.core.sync.models import SyncOutcome, SyncProgressEvent

__all__ = [
    "ContentRecord",
    "ContentTreeNode",
    "CopyProgress",
    "CopyResult",
    "DiscoveredResource",
    "ResourceKind",
    "SyncOutcome",
    "SyncProgressEvent",
    "__version__",
]
