"""
Resource sync: reconcile local definitions against a space.
"""

from spacemig.core.sync.models import (
    SyncAction,
    SyncError,
    SyncEventType,
    SyncOptions,
    SyncOutcome,
    SyncProgressEvent,
)
from spacemig.core.sync.policies import ResourcePolicy, get_policy
from spacemig.core.sync.service import SyncProgressCallback, SyncService

__all__ = [
    "ResourcePolicy",
    "SyncAction",
    "SyncError",
    "SyncEventType",
    "SyncOptions",
    "SyncOutcome",
    "SyncProgressCallback",
    "SyncProgressEvent",
    "SyncService",
    "get_policy",
]
