"""
Data models for resource sync.

Defines Pydantic models for sync options, streamed progress events and
the aggregate outcome of one sync call.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class SyncEventType(str, Enum):
    """Type of a streamed sync event."""

    START = "start"
    PROGRESS = "progress"
    COMPLETE = "complete"


class SyncAction(str, Enum):
    """Per-item action carried by a progress event."""

    CREATING = "creating"
    UPDATING = "updating"
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self not in (SyncAction.CREATING, SyncAction.UPDATING)


class SyncProgressEvent(BaseModel):
    """
    One event streamed during a sync call.

    A sync emits one START event, PROGRESS events for every item
    transition, and exactly one COMPLETE event at the end.
    """

    type: SyncEventType
    current: int | None = Field(default=None, ge=0)
    total: int | None = Field(default=None, ge=0)
    name: str | None = Field(default=None, description="Item the event is about")
    action: SyncAction | None = Field(default=None)
    message: str | None = Field(default=None)


class SyncError(BaseModel):
    """A failed item (or a failed follow-up write such as a preset)."""

    name: str
    message: str


class SyncOptions(BaseModel):
    """
    Policy toggles for one sync call.

    Attributes:
        dry_run: Classify only; nothing is written and would-be writes are
            reported as skipped
        presets: Components only: also upsert each component's presets
        ssot: Components only: local definitions are the single source of
            truth, existing components are always overwritten
        entries: Datasources only: also upsert datasource entries
    """

    dry_run: bool = False
    presets: bool = False
    ssot: bool = False
    entries: bool = True


class SyncOutcome(BaseModel):
    """
    Aggregate result of one sync call.

    Example:
        >>> outcome = SyncOutcome(created=["hero"], skipped=["teaser"])
        >>> outcome.summary()
        '1 created, 0 updated, 1 skipped, 0 errors'
    """

    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: list[SyncError] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        """Generate a human-readable summary of the outcome."""
        return (
            f"{len(self.created)} created, {len(self.updated)} updated, "
            f"{len(self.skipped)} skipped, {len(self.errors)} errors"
        )
