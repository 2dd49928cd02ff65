"""Relay worker pool.

Each worker repeatedly claims one job from the durable queue and relays the
submission's approval to the secondary ledger as a reputation increase.
Up to ``concurrency`` workers run at once; each handles one job at a time.

Per job:
  1. re-read the submission; not APPROVED or already relayed -> no-op
  2. re-read the submitter; a registered secondary address is required
  3. increase_reputation under a hard timeout
  4. persist relay_tx_ref (the completion marker)

Retryable failures go back to the queue with backoff. When a job is
exhausted its claim is released so the next sweep re-enqueues it.
"""

from __future__ import annotations

import asyncio
from enum import Enum

import bittensor as bt

from datadao.curation.errors import RelayError
from datadao.curation.models import RelayJob, RelayJobStatus, SubmissionStatus
from datadao.ledger.interface import SecondaryLedger
from datadao.store.interface import SubmissionStore

from .queue import RelayQueue


class JobOutcome(str, Enum):
    RELAYED = "relayed"
    SKIPPED = "skipped"
    RETRY = "retry"
    FAILED = "failed"


def relay_reason(submission_id: str) -> str:
    return f"Data submission approved: {submission_id}"


class RelayWorkerPool:
    """Bounded pool of queue consumers driving secondary-ledger updates."""

    def __init__(
        self,
        store: SubmissionStore,
        queue: RelayQueue,
        secondary_ledger: SecondaryLedger,
        concurrency: int = 5,
        reputation_delta: int = 10,
        call_timeout: float = 30.0,
        poll_interval: float = 1.0,
    ):
        self.store = store
        self.queue = queue
        self.secondary_ledger = secondary_ledger
        self.concurrency = concurrency
        self.reputation_delta = reputation_delta
        self.call_timeout = call_timeout
        self.poll_interval = poll_interval

        self._stop = asyncio.Event()
        self._workers: list[asyncio.Task] = []
        self.in_flight = 0

    # -- Single job --

    async def _relay(self, job: RelayJob) -> str | None:
        """Do the relay. Returns the tx ref, or None if there was nothing to do."""
        submission = await self.store.get_submission(job.submission_id)
        if submission is None:
            bt.logging.warning({"relay_job": {"submission_missing": job.submission_id}})
            return None
        if submission.status != SubmissionStatus.APPROVED:
            bt.logging.debug({"relay_job": {"not_approved": job.submission_id, "status": submission.status.value}})
            return None
        if submission.relay_tx_ref is not None:
            return None

        user = await self.store.get_user(submission.user_id)
        if user is None:
            raise RelayError(f"user {submission.user_id} not found", retryable=False)
        if not user.secondary_address:
            raise RelayError(
                f"user {user.id} has no registered secondary-ledger address",
                retryable=False,
            )

        try:
            tx_ref = await asyncio.wait_for(
                self.secondary_ledger.increase_reputation(
                    user.secondary_address,
                    self.reputation_delta,
                    relay_reason(submission.id),
                ),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError as e:
            raise RelayError(f"increase_reputation timed out after {self.call_timeout}s") from e
        except RelayError:
            raise
        except Exception as e:
            raise RelayError(f"increase_reputation failed: {e}") from e

        await self.store.mark_relayed(submission.id, tx_ref, self.reputation_delta)
        return tx_ref

    async def process_job(self, job: RelayJob) -> JobOutcome:
        """Run one claimed job to a queue outcome. Never raises RelayError."""
        try:
            tx_ref = await self._relay(job)
        except RelayError as e:
            status = await self.queue.fail(job, str(e), retryable=e.retryable)
            if status == RelayJobStatus.QUEUED:
                return JobOutcome.RETRY

            await self.store.release_relay_claim(job.submission_id)
            bt.logging.error({
                "relay_job_failed": {
                    "submission_id": job.submission_id,
                    "attempts": job.attempts,
                    "error": str(e),
                    "retryable": e.retryable,
                }
            })
            return JobOutcome.FAILED

        await self.queue.complete(job.id)
        if tx_ref is None:
            return JobOutcome.SKIPPED

        bt.logging.info({
            "relay_job_completed": {
                "submission_id": job.submission_id,
                "relay_tx": tx_ref,
                "attempts": job.attempts,
            }
        })
        return JobOutcome.RELAYED

    async def run_once(self) -> JobOutcome | None:
        """Claim and process a single job if one is runnable."""
        job = await self.queue.claim_next()
        if job is None:
            return None
        self.in_flight += 1
        try:
            return await self.process_job(job)
        finally:
            self.in_flight -= 1

    # -- Pool lifecycle --

    async def _worker(self, index: int) -> None:
        while not self._stop.is_set():
            try:
                outcome = await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Store/queue trouble; the job stays active until recover_stale.
                bt.logging.error({"relay_worker_error": {"worker": index, "error": str(e)}})
                outcome = None

            if outcome is None:
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass

    async def run(self) -> None:
        """Run ``concurrency`` workers until stopped."""
        bt.logging.info({"relay_pool": {"status": "starting", "concurrency": self.concurrency}})
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"relay-worker-{i}")
            for i in range(self.concurrency)
        ]
        try:
            await asyncio.gather(*self._workers)
        finally:
            self._workers = []
            bt.logging.info({"relay_pool": "stopped"})

    def stop(self) -> None:
        """Stop claiming new jobs; in-flight jobs run to completion."""
        self._stop.set()

    async def cancel(self) -> None:
        """Cancel workers immediately, abandoning in-flight jobs."""
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)


__all__ = ["JobOutcome", "RelayWorkerPool", "relay_reason"]
