"""
Story replication between spaces.
"""

from spacemig.core.replicate.models import CopyProgress, CopyResult, CopyStatus
from spacemig.core.replicate.replicator import ProgressCallback, StoryReplicator

__all__ = [
    "CopyProgress",
    "CopyResult",
    "CopyStatus",
    "ProgressCallback",
    "StoryReplicator",
]
