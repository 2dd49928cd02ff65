"""Tests for claim-then-enqueue and the discovery sweep."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import add_submission, add_user
from datadao.curation.models import SubmissionStatus
from datadao.relay import DiscoverySweep, RelayEnqueuer, RelayQueue


async def _approved(store, submission_id: str) -> None:
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


@pytest.fixture
def queue(database):
    return RelayQueue(database)


@pytest.fixture
def enqueuer(store, queue):
    return RelayEnqueuer(store, queue, claim_ttl_seconds=300)


class TestEnqueuer:

    @pytest.mark.asyncio
    async def test_claim_blocks_duplicate_enqueue(self, store, queue, enqueuer):
        await add_user(store)
        await _approved(store, "s1")

        assert await enqueuer.enqueue_relay("s1") is True
        assert await enqueuer.enqueue_relay("s1") is False
        assert len(await queue.jobs_for("s1")) == 1

    @pytest.mark.asyncio
    async def test_expired_claim_with_open_job(self, store, queue, enqueuer):
        await add_user(store)
        await _approved(store, "s1")
        now = datetime.now(timezone.utc)

        assert await enqueuer.enqueue_relay("s1", now=now) is True
        # Claim has expired but the first job is still open.
        assert await enqueuer.enqueue_relay("s1", now=now + timedelta(seconds=400)) is False
        assert len(await queue.jobs_for("s1")) == 1

    @pytest.mark.asyncio
    async def test_pending_not_enqueued(self, store, queue, enqueuer):
        await add_user(store)
        await add_submission(store, "s1")
        assert await enqueuer.enqueue_relay("s1") is False
        assert await queue.jobs_for("s1") == []


class TestDiscoverySweep:

    @pytest.mark.asyncio
    async def test_sweep_enqueues_unrelayed(self, store, queue, enqueuer):
        await add_user(store)
        await _approved(store, "a")
        await _approved(store, "b")
        await add_submission(store, "pending")
        sweep = DiscoverySweep(store, enqueuer, batch_size=10)

        first = await sweep.sweep_once()
        second = await sweep.sweep_once()

        assert (first.discovered, first.enqueued) == (2, 2)
        assert (second.discovered, second.enqueued, second.skipped) == (2, 0, 2)
        assert (await queue.counts())["queued"] == 2

    @pytest.mark.asyncio
    async def test_batch_size_bounds_enqueue(self, store, queue, enqueuer):
        await add_user(store)
        for i in range(5):
            await _approved(store, f"s{i}")
        sweep = DiscoverySweep(store, enqueuer, batch_size=3)

        result = await sweep.sweep_once()

        assert result.enqueued == 3
        assert (await queue.counts())["queued"] == 3

    @pytest.mark.asyncio
    async def test_relayed_not_rediscovered(self, store, queue, enqueuer):
        await add_user(store)
        await _approved(store, "s1")
        await store.mark_relayed("s1", "relay-tx", 10)

        result = await DiscoverySweep(store, enqueuer).sweep_once()
        assert result.discovered == 0

    @pytest.mark.asyncio
    async def test_run_and_stop(self, store, enqueuer):
        await add_user(store)
        await _approved(store, "s1")
        cycles = []

        async def on_cycle():
            cycles.append(1)

        sweep = DiscoverySweep(store, enqueuer, interval_seconds=0.01)
        task = asyncio.create_task(sweep.run(on_cycle=on_cycle))
        for _ in range(100):
            if len(cycles) >= 2:
                break
            await asyncio.sleep(0.01)
        sweep.stop()
        await asyncio.wait_for(task, timeout=2)

        assert len(cycles) >= 2
        assert not sweep.running
        assert (await store.get_submission("s1")).status == SubmissionStatus.APPROVED
