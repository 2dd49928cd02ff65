"""Tests for the relay runtime lifecycle."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeSecondaryLedger, add_submission, add_user
from datadao.curation.models import RelayJobStatus
from datadao.relay import (
    DiscoverySweep,
    RelayEnqueuer,
    RelayQueue,
    RelayRuntime,
    RelayWorkerPool,
)


async def _approved(store, submission_id: str = "s1") -> None:
    await add_submission(store, submission_id)
    await store.mark_approved(
        submission_id,
        reviewer_id="rev",
        reviewed_at=datetime.now(timezone.utc),
        approval_tx_ref="approval-tx",
        quality_score=None,
        reward_amount="10",
        reward_tx_ref="mint-tx",
        reward_error=None,
    )


def _runtime(store, database, ledger, sweep_interval=60.0):
    queue = RelayQueue(database, backoff_base_seconds=0)
    enqueuer = RelayEnqueuer(store, queue)
    sweep = DiscoverySweep(store, enqueuer, interval_seconds=sweep_interval)
    pool = RelayWorkerPool(store, queue, ledger, concurrency=2, poll_interval=0.01)
    return RelayRuntime(sweep, pool, queue, keep_completed=100, keep_failed=50), queue


async def _wait_for(predicate, timeout: float = 3.0) -> bool:
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        if await predicate():
            return True
        await asyncio.sleep(0.02)
    return False


class TestRelayRuntime:

    @pytest.mark.asyncio
    async def test_sweep_to_relay_end_to_end(self, store, database, secondary_ledger):
        await add_user(store)
        await _approved(store, "s1")
        await _approved(store, "s2")
        runtime, queue = _runtime(store, database, secondary_ledger)

        await runtime.start()

        async def all_relayed():
            return await store.find_unrelayed(10) == []

        assert await _wait_for(all_relayed)
        assert await runtime.shutdown(timeout=2) is True
        assert runtime.sweep.running is False
        assert (await queue.counts())["completed"] == 2

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight(self, store, database):
        await add_user(store)
        await _approved(store)
        ledger = FakeSecondaryLedger(delay=0.3)
        runtime, queue = _runtime(store, database, ledger)

        await runtime.start()

        async def in_flight():
            return runtime.pool.in_flight == 1

        assert await _wait_for(in_flight)
        assert await runtime.shutdown(timeout=5) is True
        assert (await store.get_submission("s1")).relay_tx_ref is not None

    @pytest.mark.asyncio
    async def test_shutdown_timeout_cancels_and_job_recovers(self, store, database):
        await add_user(store)
        await _approved(store)
        runtime, queue = _runtime(store, database, FakeSecondaryLedger(delay=10))

        await runtime.start()

        async def in_flight():
            return runtime.pool.in_flight == 1

        assert await _wait_for(in_flight)
        assert await runtime.shutdown(timeout=0.1) is False

        job = (await queue.jobs_for("s1"))[0]
        assert job.status == RelayJobStatus.ACTIVE
        later = datetime.now(timezone.utc) + timedelta(seconds=1)
        assert await queue.recover_stale(0, now=later) == 1
        assert (await store.get_submission("s1")).relay_tx_ref is None

    @pytest.mark.asyncio
    async def test_stop_sweep_keeps_workers(self, store, database, secondary_ledger):
        await add_user(store)
        runtime, queue = _runtime(store, database, secondary_ledger, sweep_interval=0.01)

        await runtime.start()
        runtime.stop_sweep()

        async def sweep_stopped():
            return not runtime.sweep.running

        assert await _wait_for(sweep_stopped)

        await _approved(store)
        await queue.enqueue("s1")

        async def relayed():
            return (await store.get_submission("s1")).relay_tx_ref is not None

        assert await _wait_for(relayed)
        assert await runtime.shutdown(timeout=2) is True

    @pytest.mark.asyncio
    async def test_start_recovers_stale_jobs(self, store, database, secondary_ledger):
        await add_user(store)
        await _approved(store)
        runtime, queue = _runtime(store, database, secondary_ledger)
        runtime.stale_job_seconds = 60
        old = datetime.now(timezone.utc) - timedelta(hours=1)
        await queue.enqueue("s1", now=old)
        await queue.claim_next(now=old)

        await runtime.start()

        async def relayed():
            return (await store.get_submission("s1")).relay_tx_ref is not None

        assert await _wait_for(relayed)
        assert await runtime.shutdown(timeout=2) is True

    @pytest.mark.asyncio
    async def test_job_orphaned_while_running_is_recovered_by_sweep_cycle(
        self, store, database, secondary_ledger,
    ):
        await add_user(store)
        await _approved(store)
        runtime, queue = _runtime(store, database, secondary_ledger, sweep_interval=0.05)
        runtime.stale_job_seconds = 0.3
        # Active but fresh: start() leaves it alone, as if a worker died mid-job.
        await queue.enqueue("s1")
        await queue.claim_next()

        await runtime.start()
        assert (await queue.jobs_for("s1"))[0].status == RelayJobStatus.ACTIVE

        async def relayed():
            return (await store.get_submission("s1")).relay_tx_ref is not None

        assert await _wait_for(relayed)
        assert await runtime.shutdown(timeout=2) is True
        jobs = await queue.jobs_for("s1")
        assert [j.status for j in jobs] == [RelayJobStatus.COMPLETED]
        assert jobs[0].attempts == 2
