"""
Tests for bounded, fully settled batch execution.
"""

import asyncio

import pytest

from spacemig.core.batching import TaskResult, chunked, run_in_batches


class TestChunked:
    """Tests for chunked()."""

    def test_even_split(self):
        assert chunked([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_last_chunk_is_short(self):
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_empty(self):
        assert chunked([], 3) == []

    def test_invalid_size(self):
        """Batch size must be positive."""
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestRunInBatches:
    """Tests for run_in_batches()."""

    @pytest.mark.asyncio
    async def test_results_in_input_order(self):
        """Results come back in input order even when tasks finish out of order."""

        async def worker(n: int) -> int:
            await asyncio.sleep(0.01 * (5 - n))
            return n * 10

        results = await run_in_batches([1, 2, 3, 4], 2, worker)

        assert [r.item for r in results] == [1, 2, 3, 4]
        assert [r.value for r in results] == [10, 20, 30, 40]
        assert all(r.ok for r in results)

    @pytest.mark.asyncio
    async def test_failures_are_captured_per_item(self):
        """One failing task does not affect its siblings or later batches."""

        async def worker(n: int) -> int:
            if n == 2:
                raise RuntimeError("boom")
            return n

        results = await run_in_batches([1, 2, 3], 2, worker)

        assert [r.ok for r in results] == [True, False, True]
        assert isinstance(results[1].error, RuntimeError)
        assert results[1].value is None
        assert results[2].value == 3

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        """Never more than batch_size tasks run at once."""
        running = 0
        peak = 0

        async def worker(n: int) -> int:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return n

        await run_in_batches(list(range(7)), 3, worker)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_batch_settles_before_next_starts(self):
        """Every task of batch N has finished before batch N+1 begins."""
        log: list[str] = []

        async def worker(n: int) -> int:
            log.append(f"start {n}")
            await asyncio.sleep(0.01 if n % 2 else 0.02)
            log.append(f"end {n}")
            return n

        await run_in_batches([0, 1, 2, 3], 2, worker)

        assert log.index("start 2") > log.index("end 0")
        assert log.index("start 2") > log.index("end 1")

    @pytest.mark.asyncio
    async def test_hooks_called_per_batch(self):
        """on_batch_start and on_batch_end see each batch once, in order."""
        starts: list[tuple[int, list[int]]] = []
        ends: list[tuple[int, list[TaskResult]]] = []

        async def worker(n: int) -> int:
            return n

        await run_in_batches(
            [1, 2, 3],
            2,
            worker,
            on_batch_start=lambda i, batch: starts.append((i, batch)),
            on_batch_end=lambda i, results: ends.append((i, results)),
        )

        assert starts == [(0, [1, 2]), (1, [3])]
        assert [i for i, _ in ends] == [0, 1]
        assert [r.item for r in ends[0][1]] == [1, 2]

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        """Cancellation is not turned into a per-item failure."""

        async def worker(n: int) -> int:
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await run_in_batches([1], 1, worker)

    @pytest.mark.asyncio
    async def test_empty_items(self):
        """No items means no batches and no results."""

        async def worker(n: int) -> int:
            return n

        assert await run_in_batches([], 3, worker) == []
