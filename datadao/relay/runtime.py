"""Relay runtime.

Runs the discovery sweep and the worker pool side by side:
recover stale jobs -> start sweep + workers. Each sweep cycle also
recovers stale jobs and prunes finished ones.
Sweep and workers can be stopped independently; shutdown drains in-flight
jobs up to a timeout and then cancels.
"""

from __future__ import annotations

import asyncio

import bittensor as bt

from .queue import RelayQueue
from .sweep import DiscoverySweep
from .worker import RelayWorkerPool


class RelayRuntime:
    """Owns the sweep and worker tasks of a relayer process."""

    def __init__(
        self,
        sweep: DiscoverySweep,
        pool: RelayWorkerPool,
        queue: RelayQueue,
        stale_job_seconds: float = 600.0,
        keep_completed: int = 100,
        keep_failed: int = 50,
    ):
        self.sweep = sweep
        self.pool = pool
        self.queue = queue
        self.stale_job_seconds = stale_job_seconds
        self.keep_completed = keep_completed
        self.keep_failed = keep_failed

        self._sweep_task: asyncio.Task | None = None
        self._pool_task: asyncio.Task | None = None

    async def _housekeeping(self) -> None:
        # Jobs orphaned by a worker error stay active and block re-enqueue until recovered.
        await self.queue.recover_stale(self.stale_job_seconds)
        removed = await self.queue.prune(self.keep_completed, self.keep_failed)
        if removed:
            bt.logging.debug({"relay_runtime": {"pruned_jobs": removed}})

    async def start(self) -> None:
        """Recover stale jobs and launch the sweep and worker tasks."""
        recovered = await self.queue.recover_stale(self.stale_job_seconds)
        bt.logging.info({
            "relay_runtime": {
                "status": "starting",
                "recovered_jobs": recovered,
                "queue": await self.queue.counts(),
            }
        })
        self._sweep_task = asyncio.create_task(
            self.sweep.run(on_cycle=self._housekeeping), name="relay-sweep",
        )
        self._pool_task = asyncio.create_task(self.pool.run(), name="relay-pool")

    async def run(self) -> None:
        """Start and block until both sweep and pool have stopped."""
        if self._sweep_task is None:
            await self.start()
        await asyncio.gather(*self._tasks(), return_exceptions=True)
        bt.logging.info({"relay_runtime": "stopped"})

    def _tasks(self) -> list[asyncio.Task]:
        return [t for t in (self._sweep_task, self._pool_task) if t is not None]

    def stop_sweep(self) -> None:
        self.sweep.stop()

    def stop_workers(self) -> None:
        self.pool.stop()

    async def shutdown(self, timeout: float = 30.0) -> bool:
        """Stop everything, waiting up to ``timeout`` for in-flight jobs.

        Returns True if all tasks finished cleanly, False if some had to be
        cancelled. Cancelled jobs stay ``active`` and are recovered on the
        next start.
        """
        self.stop_sweep()
        self.stop_workers()

        tasks = self._tasks()
        if not tasks:
            return True

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if not pending:
            return True

        bt.logging.warning({
            "relay_runtime": {"shutdown": "timeout", "in_flight": self.pool.in_flight}
        })
        await self.pool.cancel()
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        return False


__all__ = ["RelayRuntime"]
