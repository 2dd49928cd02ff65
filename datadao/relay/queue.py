"""Durable relay job queue backed by the ``relay_job`` table.

At-least-once semantics: a job moves queued -> active -> completed|failed.
A retryable failure with attempts left goes back to queued with an
``available_at`` pushed out by exponential backoff
(base * 2 ** (attempts - 1)). A job left ``active`` by a crashed process
is returned to queued by ``recover_stale``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bittensor as bt
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from datadao.curation.models import RelayJob, RelayJobStatus
from datadao.database.dbm import DatabaseManager
from datadao.database.schema import relay_job_table

_J = relay_job_table

_OPEN_STATUSES = (RelayJobStatus.QUEUED.value, RelayJobStatus.ACTIVE.value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RelayQueue:
    """SQL-backed job queue with per-job attempt metadata."""

    def __init__(
        self,
        database: DatabaseManager,
        max_attempts: int = 3,
        backoff_base_seconds: float = 2.0,
    ):
        self.database = database
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds

    def backoff_delay(self, attempts: int) -> float:
        """Delay before the next run after ``attempts`` failed attempts."""
        return self.backoff_base_seconds * (2 ** max(0, attempts - 1))

    async def enqueue(self, submission_id: str, now: datetime | None = None) -> int | None:
        """Add a job for a submission.

        Returns the job id, or None if an open (queued/active) job for the
        submission already exists.
        """
        now = now or _utcnow()
        try:
            job_id = await self.database.write_returning(
                insert(_J)
                .values(
                    submission_id=submission_id,
                    status=RelayJobStatus.QUEUED.value,
                    attempts=0,
                    max_attempts=self.max_attempts,
                    available_at=now,
                    created_at=now,
                    updated_at=now,
                )
                .returning(_J.c.id)
            )
        except IntegrityError:
            bt.logging.debug({"relay_queue": {"enqueue": "duplicate_open_job", "submission_id": submission_id}})
            return None

        bt.logging.debug({"relay_queue": {"enqueued": submission_id, "job_id": job_id}})
        return int(job_id)

    async def get(self, job_id: int) -> RelayJob | None:
        rows = await self.database.read(select(_J).where(_J.c.id == job_id), mappings=True)
        return RelayJob.model_validate(rows[0]) if rows else None

    async def claim_next(self, now: datetime | None = None) -> RelayJob | None:
        """Atomically take the oldest runnable job and mark it active.

        Increments ``attempts``. Returns None when nothing is runnable.
        """
        now = now or _utcnow()
        for _ in range(5):
            rows = await self.database.read(
                select(_J.c.id)
                .where(
                    _J.c.status == RelayJobStatus.QUEUED.value,
                    _J.c.available_at <= now,
                )
                .order_by(_J.c.available_at, _J.c.id)
                .limit(1),
            )
            if not rows:
                return None

            job_id = rows[0][0]
            won = await self.database.write(
                update(_J)
                .where(_J.c.id == job_id, _J.c.status == RelayJobStatus.QUEUED.value)
                .values(
                    status=RelayJobStatus.ACTIVE.value,
                    attempts=_J.c.attempts + 1,
                    updated_at=now,
                )
            )
            if won == 1:
                return await self.get(job_id)
            # Another worker took it; look again.
        return None

    async def complete(self, job_id: int) -> None:
        await self.database.write(
            update(_J)
            .where(_J.c.id == job_id)
            .values(status=RelayJobStatus.COMPLETED.value, last_error=None, updated_at=_utcnow())
        )

    async def fail(
        self,
        job: RelayJob,
        error: str,
        retryable: bool = True,
        now: datetime | None = None,
    ) -> RelayJobStatus:
        """Record a failed attempt.

        Returns QUEUED if the job will be retried, FAILED if it is exhausted
        or the error is not retryable.
        """
        now = now or _utcnow()
        if retryable and job.attempts < job.max_attempts:
            delay = self.backoff_delay(job.attempts)
            await self.database.write(
                update(_J)
                .where(_J.c.id == job.id)
                .values(
                    status=RelayJobStatus.QUEUED.value,
                    available_at=now + timedelta(seconds=delay),
                    last_error=error,
                    updated_at=now,
                )
            )
            bt.logging.info({
                "relay_queue": {
                    "retry": job.submission_id,
                    "attempt": job.attempts,
                    "delay": delay,
                    "error": error,
                }
            })
            return RelayJobStatus.QUEUED

        await self.database.write(
            update(_J)
            .where(_J.c.id == job.id)
            .values(status=RelayJobStatus.FAILED.value, last_error=error, updated_at=now)
        )
        return RelayJobStatus.FAILED

    async def recover_stale(self, older_than_seconds: float, now: datetime | None = None) -> int:
        """Return jobs stuck in ``active`` (crashed worker) to the queue."""
        now = now or _utcnow()
        cutoff = now - timedelta(seconds=older_than_seconds)
        count = await self.database.write(
            update(_J)
            .where(_J.c.status == RelayJobStatus.ACTIVE.value, _J.c.updated_at < cutoff)
            .values(status=RelayJobStatus.QUEUED.value, available_at=now, updated_at=now)
        )
        if count:
            bt.logging.warning({"relay_queue": {"recovered_stale_jobs": count}})
        return count

    async def prune(self, keep_completed: int = 100, keep_failed: int = 50) -> int:
        """Delete finished jobs beyond the newest ``keep_*`` per status."""
        removed = 0
        for status, keep in (
            (RelayJobStatus.COMPLETED.value, keep_completed),
            (RelayJobStatus.FAILED.value, keep_failed),
        ):
            newest = (
                select(_J.c.id)
                .where(_J.c.status == status)
                .order_by(_J.c.id.desc())
                .limit(keep)
            )
            removed += await self.database.write(
                delete(_J).where(_J.c.status == status, _J.c.id.not_in(newest))
            )
        return removed

    async def counts(self) -> dict[str, int]:
        rows = await self.database.read(
            select(_J.c.status, func.count()).group_by(_J.c.status),
        )
        out: dict[str, Any] = {s.value: 0 for s in RelayJobStatus}
        for status, n in rows:
            out[status] = int(n)
        return out

    async def jobs_for(self, submission_id: str) -> list[RelayJob]:
        rows = await self.database.read(
            select(_J).where(_J.c.submission_id == submission_id).order_by(_J.c.id),
            mappings=True,
        )
        return [RelayJob.model_validate(r) for r in rows]


__all__ = ["RelayQueue"]
