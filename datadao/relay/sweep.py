"""Relay discovery: claim-then-enqueue and the periodic sweep.

The sweep is the source of truth for relay work. Every cycle it lists
approved submissions that have no relay marker and enqueues each one it
can claim. Jobs lost to a restart, or exhausted by the retry policy, are
rediscovered on a later cycle because the marker is still absent.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone

import bittensor as bt

from datadao.store.interface import SubmissionStore

from .queue import RelayQueue


@dataclass
class SweepResult:
    discovered: int = 0
    enqueued: int = 0
    skipped: int = 0


class RelayEnqueuer:
    """Sets the in-flight claim on a submission, then enqueues its job."""

    def __init__(self, store: SubmissionStore, queue: RelayQueue, claim_ttl_seconds: float = 300.0):
        self.store = store
        self.queue = queue
        self.claim_ttl_seconds = claim_ttl_seconds

    async def enqueue_relay(self, submission_id: str, now: datetime | None = None) -> bool:
        """Enqueue a relay job unless the submission is already claimed.

        Returns True if a new job was queued.
        """
        now = now or datetime.now(timezone.utc)
        if not await self.store.claim_relay(submission_id, now, self.claim_ttl_seconds):
            return False

        job_id = await self.queue.enqueue(submission_id, now=now)
        if job_id is None:
            # An open job already exists (e.g. claim expired while the job waited in backoff).
            return False
        return True


class DiscoverySweep:
    """Periodic scan for approved-but-unrelayed submissions."""

    def __init__(
        self,
        store: SubmissionStore,
        enqueuer: RelayEnqueuer,
        interval_seconds: float = 30.0,
        batch_size: int = 100,
    ):
        self.store = store
        self.enqueuer = enqueuer
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self._running = False
        self._stop = asyncio.Event()

    async def sweep_once(self) -> SweepResult:
        """Run one discovery cycle."""
        result = SweepResult()
        submission_ids = await self.store.find_unrelayed(self.batch_size)
        result.discovered = len(submission_ids)

        for submission_id in submission_ids:
            if await self.enqueuer.enqueue_relay(submission_id):
                result.enqueued += 1
            else:
                result.skipped += 1

        if result.discovered:
            bt.logging.info({
                "relay_sweep": {
                    "discovered": result.discovered,
                    "enqueued": result.enqueued,
                    "skipped": result.skipped,
                }
            })
        return result

    async def run(self, on_cycle=None) -> None:
        """Sweep every ``interval_seconds`` until stopped.

        ``on_cycle`` is an optional coroutine function awaited after each
        sweep (used by the runtime for queue housekeeping).
        """
        self._running = True
        bt.logging.info({"relay_sweep": {"status": "starting", "interval": self.interval_seconds}})

        while not self._stop.is_set():
            try:
                await self.sweep_once()
                if on_cycle is not None:
                    await on_cycle()
            except asyncio.CancelledError:
                break
            except Exception as e:
                bt.logging.error({"relay_sweep_error": str(e)})

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
            except asyncio.CancelledError:
                break

        self._running = False
        bt.logging.info({"relay_sweep": "stopped"})

    def stop(self) -> None:
        """Stop after the current cycle."""
        self._stop.set()

    @property
    def running(self) -> bool:
        return self._running


__all__ = ["DiscoverySweep", "RelayEnqueuer", "SweepResult"]
