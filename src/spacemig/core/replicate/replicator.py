"""
Story replication between spaces.

A copy runs in four phases:

1. Fetch the selected stories from the source space in batches of
   ``fetch_batch_size``. A failed fetch is recorded and the story is left
   out of the working set.
2. Build a tree from exactly the fetched stories.
3. Create the tree in the target space level by level. Siblings are
   created in batches of ``create_batch_size``. Children are only
   scheduled once their parent exists, under the parent's new id; the
   children of a story that failed to create are never attempted.
4. Emit one terminal progress event.

No error escapes as an exception: every per-story failure ends up in
``CopyResult.errors``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from spacemig.core.api.client import SpaceId
from spacemig.core.batching import TaskResult, run_in_batches
from spacemig.core.content.models import ContentRecord, ContentTreeNode
from spacemig.core.content.tree import build_tree
from spacemig.core.replicate.models import CopyProgress, CopyResult, CopyStatus

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[CopyProgress], None]

# A unit of creation work: the node and the id it will be parented under
WorkItem = tuple[ContentTreeNode, int | None]


class StoryClient(Protocol):
    """The part of the Management API client the replicator needs."""

    async def get_story(self, space_id: SpaceId, story_id: int) -> ContentRecord: ...

    async def create_story(self, space_id: SpaceId, payload: dict) -> ContentRecord: ...


@dataclass
class _CopyRun:
    """Mutable state owned by a single copy call."""

    total: int = 0
    created: int = 0
    errors: list[str] = field(default_factory=list)
    id_map: dict[int, int] = field(default_factory=dict)


class StoryReplicator:
    """
    Copies stories from one space to another, preserving hierarchy.

    Example:
        >>> replicator = StoryReplicator(client)
        >>> result = await replicator.copy(111, 222, [10, 11], None)
        >>> result.copied_count
        2
    """

    DEFAULT_FETCH_BATCH_SIZE = 5
    DEFAULT_CREATE_BATCH_SIZE = 3

    def __init__(
        self,
        client: StoryClient,
        *,
        fetch_batch_size: int = DEFAULT_FETCH_BATCH_SIZE,
        create_batch_size: int = DEFAULT_CREATE_BATCH_SIZE,
    ) -> None:
        if fetch_batch_size < 1 or create_batch_size < 1:
            raise ValueError("batch sizes must be >= 1")
        self.client = client
        self.fetch_batch_size = fetch_batch_size
        self.create_batch_size = create_batch_size

    async def copy(
        self,
        source_space_id: SpaceId,
        target_space_id: SpaceId,
        story_ids: Sequence[int],
        destination_parent_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> CopyResult:
        """
        Copy the given stories into the target space.

        Args:
            source_space_id: Space to read from
            target_space_id: Space to create stories in
            story_ids: Stories to copy; a story whose parent is also
                selected keeps that relationship in the target
            destination_parent_id: Folder in the target space that roots
                the copied forest (None for the space root)
            on_progress: Receives CopyProgress events

        Returns:
            CopyResult with the created count and itemised errors
        """
        emit = on_progress or _ignore_progress
        run = _CopyRun()

        # Duplicate ids would otherwise be fetched and created twice
        unique_ids = list(dict.fromkeys(story_ids))

        records = await self._fetch(source_space_id, unique_ids, run, emit)
        run.total = len(records)

        forest = build_tree(records)
        logger.debug(
            "Copying %d stories (%d roots) from space %s to space %s",
            run.total, len(forest), source_space_id, target_space_id,
        )

        await self._materialize(target_space_id, forest, destination_parent_id, run, emit)

        emit(
            CopyProgress(
                current=run.created,
                total=run.total,
                current_item="Complete",
                status=CopyStatus.ERROR if run.errors else CopyStatus.DONE,
                error=f"{len(run.errors)} error(s)" if run.errors else None,
            )
        )

        return CopyResult(
            success=not run.errors,
            copied_count=run.created,
            errors=run.errors,
        )

    async def _fetch(
        self,
        space_id: SpaceId,
        story_ids: list[int],
        run: _CopyRun,
        emit: ProgressCallback,
    ) -> list[ContentRecord]:
        """Phase 1: fetch full stories batch by batch."""
        requested = len(story_ids)

        def announce(index: int, batch: list[int]) -> None:
            first = index * self.fetch_batch_size + 1
            emit(
                CopyProgress(
                    current=0,
                    total=requested,
                    current_item=f"Fetching stories {first}-{first + len(batch) - 1} "
                    f"of {requested}...",
                    status=CopyStatus.PENDING,
                )
            )

        async def fetch(story_id: int) -> ContentRecord:
            return await self.client.get_story(space_id, story_id)

        results = await run_in_batches(
            story_ids, self.fetch_batch_size, fetch, on_batch_start=announce
        )

        records: list[ContentRecord] = []
        for result in results:
            if result.ok and result.value is not None:
                records.append(result.value)
            else:
                logger.warning("Failed to fetch story %s: %s", result.item, result.error)
                run.errors.append(f"Failed to fetch story {result.item}: {result.error}")
        return records

    async def _materialize(
        self,
        space_id: SpaceId,
        forest: list[ContentTreeNode],
        destination_parent_id: int | None,
        run: _CopyRun,
        emit: ProgressCallback,
    ) -> None:
        """Phase 3: create the forest breadth first, one level at a time."""
        level: list[WorkItem] = [(node, destination_parent_id) for node in forest]
        depth = 0

        async def create(item: WorkItem) -> ContentRecord:
            node, parent_id = item
            return await self.client.create_story(space_id, node.record.copy_payload(parent_id))

        while level:
            next_level: list[WorkItem] = []

            def announce(_index: int, batch: list[WorkItem]) -> None:
                for node, _parent_id in batch:
                    emit(
                        CopyProgress(
                            current=run.created + 1,
                            total=run.total,
                            current_item=node.name,
                            status=CopyStatus.COPYING,
                        )
                    )

            def settle(_index: int, results: list[TaskResult[WorkItem, ContentRecord]]) -> None:
                for result in results:
                    node, _parent_id = result.item
                    if result.ok and result.value is not None:
                        new_id = result.value.id
                        run.id_map[node.id] = new_id
                        run.created += 1
                        next_level.extend((child, new_id) for child in node.children)
                    else:
                        logger.warning("Failed to create %r: %s", node.name, result.error)
                        run.errors.append(f'Failed to create "{node.name}": {result.error}')

            logger.debug("Creating level %d (%d stories)", depth, len(level))
            await run_in_batches(
                level,
                self.create_batch_size,
                create,
                on_batch_start=announce,
                on_batch_end=settle,
            )
            level = next_level
            depth += 1


def _ignore_progress(_progress: CopyProgress) -> None:
    pass


__all__ = ["ProgressCallback", "StoryClient", "StoryReplicator"]
