"""
Bounded-concurrency batch execution.

Work is split into consecutive chunks. All tasks in one chunk run
concurrently and every one of them settles (success or failure) before
the next chunk starts. Each task's outcome is returned as a TaskResult,
so failures are merged by the caller at the join point instead of being
appended to a shared list from inside the tasks.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class TaskResult(Generic[T, R]):
    """Outcome of one task: either a value or the exception it raised."""

    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split a sequence into consecutive chunks of at most ``size`` items."""
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


async def run_in_batches(
    items: Sequence[T],
    batch_size: int,
    worker: Callable[[T], Awaitable[R]],
    *,
    on_batch_start: Callable[[int, list[T]], None] | None = None,
    on_batch_end: Callable[[int, list[TaskResult[T, R]]], None] | None = None,
) -> list[TaskResult[T, R]]:
    """
    Run ``worker`` over ``items`` in fully settled batches.

    Args:
        items: Work items, processed in order
        batch_size: Maximum number of concurrent tasks
        worker: Coroutine function applied to each item
        on_batch_start: Called with (batch index, batch items) before a batch
        on_batch_end: Called with (batch index, batch results) once every
            task of the batch has settled, before the next batch starts

    Returns:
        One TaskResult per item, in input order

    Raises:
        ValueError: If batch_size < 1
    """
    results: list[TaskResult[T, R]] = []

    for index, batch in enumerate(chunked(items, batch_size)):
        if on_batch_start is not None:
            on_batch_start(index, batch)

        logger.debug("Starting batch %d with %d task(s)", index, len(batch))
        outcomes = await asyncio.gather(
            *(worker(item) for item in batch), return_exceptions=True
        )

        batch_results: list[TaskResult[T, R]] = []
        for item, outcome in zip(batch, outcomes):
            if isinstance(outcome, Exception):
                batch_results.append(TaskResult(item=item, error=outcome))
            elif isinstance(outcome, BaseException):
                # cancellation and interpreter exits are not per-task failures
                raise outcome
            else:
                batch_results.append(TaskResult(item=item, value=outcome))

        if on_batch_end is not None:
            on_batch_end(index, batch_results)
        results.extend(batch_results)

    return results


__all__ = ["TaskResult", "chunked", "run_in_batches"]
