"""Tests for WorkerPool."""

import asyncio

import pytest

from accuripper.utils.worker_pool import WorkerPool


class TestWorkerPool:
    """Bounded submission and joining."""

    def test_rejects_non_positive_capacity(self) -> None:
        with pytest.raises(ValueError):
            WorkerPool(0)

    async def test_submit_blocks_while_full(self) -> None:
        release = asyncio.Event()
        started = []

        async def job(n: int) -> None:
            started.append(n)
            await release.wait()

        async with WorkerPool(2) as pool:
            await pool.submit(job, 1)
            await pool.submit(job, 2)
            third = asyncio.create_task(pool.submit(job, 3))
            await asyncio.sleep(0.01)

            assert not third.done()
            assert pool.in_flight == 2

            release.set()
            await third

        assert sorted(started) == [1, 2, 3]
        assert pool.peak_in_flight == 2
        assert pool.in_flight == 0

    async def test_failing_job_releases_its_slot(self) -> None:
        results = []

        async def failing() -> None:
            raise RuntimeError("boom")

        async def ok() -> None:
            results.append("ok")

        async with WorkerPool(1) as pool:
            await pool.submit(failing)
            await pool.submit(ok)

        assert results == ["ok"]

    async def test_exit_joins_all_tasks(self) -> None:
        done = []

        async def job(n: int) -> None:
            await asyncio.sleep(0.001 * n)
            done.append(n)

        async with WorkerPool(3) as pool:
            for n in range(9):
                await pool.submit(job, n)

        assert sorted(done) == list(range(9))
