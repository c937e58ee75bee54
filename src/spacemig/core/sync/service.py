"""
Resource sync service.

Reconciles local resource definitions against a space's remote state.
Every item is classified against the remote listing and then created,
updated or skipped:

    Discovered -> Creating -> Created | Error
    Discovered -> Updating -> Updated | Error
    Discovered -> Skipped

Writes are dispatched in bounded batches. Each item's write is isolated:
one failure is recorded for that item and never aborts the others. There
are no retries at this level; the first failure is terminal for the item.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from spacemig.core.api.client import ManagementClient, SpaceId
from spacemig.core.batching import TaskResult, run_in_batches
from spacemig.core.discovery.models import ResourceKind
from spacemig.core.sync.models import (
    SyncAction,
    SyncError,
    SyncEventType,
    SyncOptions,
    SyncOutcome,
    SyncProgressEvent,
)
from spacemig.core.sync.policies import Definition, ResourcePolicy, get_policy

logger = logging.getLogger(__name__)

SyncProgressCallback = Callable[[SyncProgressEvent], None]


class PlanStep(str, Enum):
    """What the classifier decided for one item."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"
    INVALID = "invalid"


@dataclass
class ItemPlan:
    """Classification of one local item against remote state."""

    name: str
    item: Definition
    step: PlanStep
    remote: Definition | None = None
    message: str | None = None


@dataclass
class ItemResult:
    """What happened to one item once its write settled."""

    action: SyncAction
    message: str | None = None
    follow_up_errors: list[SyncError] = field(default_factory=list)


class SyncService:
    """
    Syncs local definitions of one kind into a space.

    Example:
        >>> service = SyncService(client)
        >>> outcome = await service.sync("components", 12345, components)
        >>> print(outcome.summary())
    """

    DEFAULT_BATCH_SIZE = 5

    def __init__(self, client: ManagementClient, *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.client = client
        self.batch_size = batch_size

    async def sync(
        self,
        kind: ResourceKind | str,
        space_id: SpaceId,
        items: list[Definition],
        options: SyncOptions | None = None,
        on_progress: SyncProgressCallback | None = None,
    ) -> SyncOutcome:
        """
        Sync local items of one kind.

        Args:
            kind: components, datasources, roles or plugins
            space_id: Target space
            items: Local definitions
            options: Dry run and kind-specific toggles
            on_progress: Receives SyncProgressEvent objects

        Returns:
            SyncOutcome with created/updated/skipped names and errors
        """
        policy = get_policy(kind)
        options = options or SyncOptions()
        emit = on_progress or _ignore_event
        outcome = SyncOutcome()
        total = len(items)

        emit(SyncProgressEvent(type=SyncEventType.START, current=0, total=total))

        try:
            remote_items = await policy.list_remote(self.client, space_id, items)
        except Exception as e:
            logger.warning("Could not list remote %s: %s", policy.kind.value, e)
            message = f"Failed to fetch remote {policy.kind.value}: {e}"
            for index, item in enumerate(items, start=1):
                name = policy.key(item) or f"item #{index}"
                outcome.errors.append(SyncError(name=name, message=message))
                emit(_progress(index, total, name, SyncAction.ERROR, message))
            emit(SyncProgressEvent(type=SyncEventType.COMPLETE, current=total, total=total))
            return outcome

        plans = self.classify(policy, items, remote_items, options)
        settled = 0

        def announce(_index: int, batch: list[ItemPlan]) -> None:
            for plan in batch:
                if plan.step == PlanStep.CREATE:
                    emit(_progress(settled, total, plan.name, SyncAction.CREATING))
                elif plan.step == PlanStep.UPDATE:
                    emit(_progress(settled, total, plan.name, SyncAction.UPDATING))

        def settle(_index: int, results: list[TaskResult[ItemPlan, ItemResult]]) -> None:
            nonlocal settled
            for result in results:
                settled += 1
                plan = result.item
                if result.ok and result.value is not None:
                    action, message = result.value.action, result.value.message
                    outcome.errors.extend(result.value.follow_up_errors)
                else:
                    action, message = SyncAction.ERROR, str(result.error)
                    logger.warning(
                        "Sync of %s %r failed: %s", policy.kind.value, plan.name, message
                    )

                if action == SyncAction.CREATED:
                    outcome.created.append(plan.name)
                elif action == SyncAction.UPDATED:
                    outcome.updated.append(plan.name)
                elif action == SyncAction.SKIPPED:
                    outcome.skipped.append(plan.name)
                else:
                    outcome.errors.append(SyncError(name=plan.name, message=message or ""))
                emit(_progress(settled, total, plan.name, action, message))

        async def apply(plan: ItemPlan) -> ItemResult:
            return await self._apply(policy, space_id, plan, options)

        await run_in_batches(
            plans, self.batch_size, apply, on_batch_start=announce, on_batch_end=settle
        )

        logger.debug("Synced %s into space %s: %s", policy.kind.value, space_id, outcome.summary())
        emit(SyncProgressEvent(type=SyncEventType.COMPLETE, current=settled, total=total))
        return outcome

    def classify(
        self,
        policy: ResourcePolicy,
        items: list[Definition],
        remote_items: list[Definition],
        options: SyncOptions,
    ) -> list[ItemPlan]:
        """Decide create/update/skip for every local item. No remote calls."""
        remote_index: dict[str, Definition] = {}
        for remote in remote_items:
            key = policy.remote_key(remote)
            if key is not None:
                remote_index.setdefault(key, remote)

        plans: list[ItemPlan] = []
        seen: set[str] = set()

        for index, item in enumerate(items, start=1):
            name = policy.key(item)
            if name is None:
                plans.append(
                    ItemPlan(f"item #{index}", item, PlanStep.INVALID, message="missing name")
                )
                continue
            if name in seen:
                plans.append(
                    ItemPlan(name, item, PlanStep.INVALID, message="duplicate local definition")
                )
                continue
            seen.add(name)

            remote = remote_index.get(name)
            if remote is None:
                step = PlanStep.CREATE
            elif policy.is_identical(item, remote, options):
                step = PlanStep.SKIP
            else:
                step = PlanStep.UPDATE

            if options.dry_run and step in (PlanStep.CREATE, PlanStep.UPDATE):
                message = "would create" if step == PlanStep.CREATE else "would update"
                plans.append(ItemPlan(name, item, PlanStep.SKIP, remote, message))
            else:
                plans.append(ItemPlan(name, item, step, remote))

        return plans

    async def _apply(
        self,
        policy: ResourcePolicy,
        space_id: SpaceId,
        plan: ItemPlan,
        options: SyncOptions,
    ) -> ItemResult:
        if plan.step == PlanStep.SKIP:
            return ItemResult(SyncAction.SKIPPED, plan.message)
        if plan.step == PlanStep.INVALID:
            return ItemResult(SyncAction.ERROR, plan.message)

        if plan.step == PlanStep.CREATE:
            written = await policy.create(self.client, space_id, plan.item)
            action = SyncAction.CREATED
        else:
            assert plan.remote is not None
            written = await policy.update(self.client, space_id, plan.item, plan.remote)
            action = SyncAction.UPDATED

        follow_up = await policy.after_write(self.client, space_id, plan.item, written, options)
        return ItemResult(action, follow_up_errors=follow_up)


def _progress(
    current: int,
    total: int,
    name: str,
    action: SyncAction,
    message: str | None = None,
) -> SyncProgressEvent:
    return SyncProgressEvent(
        type=SyncEventType.PROGRESS,
        current=current,
        total=total,
        name=name,
        action=action,
        message=message,
    )


def _ignore_event(_event: SyncProgressEvent) -> None:
    pass


__all__ = ["ItemPlan", "PlanStep", "SyncProgressCallback", "SyncService"]
