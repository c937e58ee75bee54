"""
Data models for stories and the story tree.

Defines Pydantic models for the records returned by the Management API
and the hierarchical tree built from them.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ContentRecord(BaseModel):
    """
    A story or folder as returned by the Management API.

    Records are immutable snapshots. Fields the API returns that are not
    modelled here (tag lists, alternates, translated slugs, ...) are kept
    as extras so that a copy posts them back unchanged.

    Example:
        >>> record = ContentRecord(id=1, uuid="a-b", name="Home", slug="home")
        >>> record.is_root
        True
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: int = Field(description="Space-scoped story id")
    uuid: str = Field(default="", description="Globally unique story id")
    name: str = Field(description="Display name")
    slug: str = Field(description="Last path segment")
    full_slug: str = Field(default="", description="Full hierarchical path")
    parent_id: int | None = Field(
        default=None,
        description="Id of the parent folder; None or 0 means root",
    )
    position: int = Field(default=0, description="Explicit sort position among siblings")
    is_folder: bool = Field(default=False)
    is_startpage: bool = Field(default=False)
    published: bool = Field(default=False)
    content: dict[str, Any] | None = Field(
        default=None,
        description="Structured content payload (absent in list responses)",
    )
    created_at: str | None = Field(default=None)
    updated_at: str | None = Field(default=None)
    published_at: str | None = Field(default=None)

    @property
    def is_root(self) -> bool:
        """Whether the record has no parent."""
        return not self.parent_id

    def copy_payload(self, parent_id: int | None) -> dict[str, Any]:
        """
        Build a create payload for another space.

        Identity fields (``id``, ``uuid``) are dropped, every other field
        is kept and ``parent_id`` is replaced.
        """
        payload = self.model_dump(exclude={"id", "uuid"}, exclude_none=False)
        payload["parent_id"] = parent_id
        return payload


class ContentTreeNode(BaseModel):
    """
    One record plus its ordered children.

    Children are sorted folders first, then by position, then by name.
    The order is used for display and copy order only.
    """

    record: ContentRecord
    children: list[ContentTreeNode] = Field(default_factory=list)

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def is_folder(self) -> bool:
        return self.record.is_folder

    def walk(self) -> Iterator[ContentTreeNode]:
        """Yield this node and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def count(self) -> int:
        """Number of nodes in this subtree, including this one."""
        return sum(1 for _ in self.walk())


ContentTreeNode.model_rebuild()


class FetchStoriesResult(BaseModel):
    """Result of fetching every story in a space."""

    records: list[ContentRecord] = Field(default_factory=list)
    tree: list[ContentTreeNode] = Field(default_factory=list)
    total: int = Field(default=0, description="Number of records fetched")
