"""
Data models for story replication.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class CopyStatus(str, Enum):
    """Status carried by a copy progress event."""

    PENDING = "pending"
    COPYING = "copying"
    DONE = "done"
    ERROR = "error"


class CopyProgress(BaseModel):
    """
    One progress event emitted during a copy.

    Events of a single copy end with exactly one event whose status is
    DONE or ERROR. ``current`` never decreases, with one exception: the
    final event reports the stories actually created, so when the last
    create fails it is one lower than the COPYING event before it.
    """

    current: int = Field(ge=0, description="Stories created so far (+1 while copying)")
    total: int = Field(ge=0, description="Size of the working set")
    current_item: str = Field(description="Label of the story being processed")
    status: CopyStatus
    error: str | None = Field(default=None)

    @property
    def is_terminal(self) -> bool:
        return self.status in (CopyStatus.DONE, CopyStatus.ERROR)


class CopyResult(BaseModel):
    """
    Result of a copy operation.

    ``success`` is False whenever any error was recorded, even if most
    stories were copied.
    """

    success: bool
    copied_count: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        if self.success:
            return f"Copied {self.copied_count} stories"
        return f"Copied {self.copied_count} stories with {len(self.errors)} error(s)"
