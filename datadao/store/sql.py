"""SQLAlchemy-backed SubmissionStore.

All transitions are single conditional UPDATE statements; the WHERE clause
is the state guard and the rowcount says whether this caller won.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bittensor as bt
from sqlalchemy import func, insert, or_, select, update

from datadao.curation.models import Submission, SubmissionStatus, User
from datadao.database.dbm import DatabaseManager
from datadao.database.schema import submission_table, user_table

_S = submission_table
_U = user_table


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_submission(row: dict[str, Any]) -> Submission:
    data = dict(row)
    data["metadata"] = data.get("metadata") or {}
    return Submission.model_validate(data)


class SQLSubmissionStore:
    """SubmissionStore over a DatabaseManager."""

    def __init__(self, database: DatabaseManager):
        self.database = database

    # -- Users --

    async def add_user(self, user: User) -> None:
        await self.database.write(
            insert(_U).values(
                id=user.id,
                primary_address=user.primary_address,
                secondary_address=user.secondary_address,
                reputation=user.reputation,
                created_at=_utcnow(),
            )
        )

    async def get_user(self, user_id: str) -> User | None:
        rows = await self.database.read(
            select(_U.c.id, _U.c.primary_address, _U.c.secondary_address, _U.c.reputation)
            .where(_U.c.id == user_id),
            mappings=True,
        )
        return User.model_validate(rows[0]) if rows else None

    # -- Submissions --

    async def add_submission(self, submission: Submission) -> Submission:
        now = _utcnow()
        await self.database.write(
            insert(_S).values(
                id=submission.id,
                user_id=submission.user_id,
                task_id=submission.task_id,
                result_hash=submission.result_hash,
                storage_uri=submission.storage_uri,
                status=submission.status.value,
                quality_score=submission.quality_score,
                metadata=submission.metadata,
                created_at=now,
                updated_at=now,
            )
        )
        return submission.model_copy(update={"created_at": now, "updated_at": now})

    async def get_submission(self, submission_id: str) -> Submission | None:
        rows = await self.database.read(
            select(_S).where(_S.c.id == submission_id),
            mappings=True,
        )
        return _to_submission(rows[0]) if rows else None

    async def list_submissions(
        self,
        status: SubmissionStatus | None = None,
        min_score: int | None = None,
        scored_only: bool = False,
        limit: int | None = None,
    ) -> list[Submission]:
        query = select(_S)
        if status is not None:
            query = query.where(_S.c.status == status.value)
        if min_score is not None:
            query = query.where(_S.c.quality_score >= min_score)
        if scored_only:
            query = query.where(_S.c.quality_score.is_not(None))
        query = query.order_by(_S.c.created_at, _S.c.id)
        if limit is not None:
            query = query.limit(limit)
        rows = await self.database.read(query, mappings=True)
        return [_to_submission(r) for r in rows]

    async def save_assessment(
        self, submission_id: str, quality_score: int, metadata: dict[str, Any],
    ) -> bool:
        count = await self.database.write(
            update(_S)
            .where(_S.c.id == submission_id)
            .values(quality_score=quality_score, metadata=metadata, updated_at=_utcnow())
        )
        return count == 1

    # -- Review transitions --

    async def claim_review(
        self, submission_id: str, now: datetime, claim_ttl_seconds: float,
    ) -> bool:
        stale_before = now - timedelta(seconds=claim_ttl_seconds)
        count = await self.database.write(
            update(_S)
            .where(
                _S.c.id == submission_id,
                _S.c.status == SubmissionStatus.PENDING.value,
                or_(
                    _S.c.review_claimed_at.is_(None),
                    _S.c.review_claimed_at < stale_before,
                ),
            )
            .values(review_claimed_at=now)
        )
        return count == 1

    async def release_review_claim(self, submission_id: str) -> None:
        await self.database.write(
            update(_S)
            .where(_S.c.id == submission_id, _S.c.status == SubmissionStatus.PENDING.value)
            .values(review_claimed_at=None)
        )

    async def mark_approved(
        self,
        submission_id: str,
        *,
        reviewer_id: str,
        reviewed_at: datetime,
        approval_tx_ref: str | None,
        quality_score: int | None,
        reward_amount: str | None,
        reward_tx_ref: str | None,
        reward_error: str | None,
    ) -> bool:
        count = await self.database.write(
            update(_S)
            .where(
                _S.c.id == submission_id,
                _S.c.status == SubmissionStatus.PENDING.value,
            )
            .values(
                status=SubmissionStatus.APPROVED.value,
                quality_score=func.coalesce(_S.c.quality_score, quality_score),
                reward_amount=reward_amount,
                reward_tx_ref=reward_tx_ref,
                reward_error=reward_error,
                approval_tx_ref=approval_tx_ref,
                reviewer_id=reviewer_id,
                reviewed_at=reviewed_at,
                review_claimed_at=None,
                updated_at=_utcnow(),
            )
        )
        return count == 1

    async def mark_rejected(
        self, submission_id: str, *, reviewer_id: str, reviewed_at: datetime,
    ) -> bool:
        count = await self.database.write(
            update(_S)
            .where(
                _S.c.id == submission_id,
                _S.c.status == SubmissionStatus.PENDING.value,
            )
            .values(
                status=SubmissionStatus.REJECTED.value,
                reviewer_id=reviewer_id,
                reviewed_at=reviewed_at,
                review_claimed_at=None,
                updated_at=_utcnow(),
            )
        )
        return count == 1

    async def record_reward(
        self,
        submission_id: str,
        *,
        reward_amount: str | None,
        reward_tx_ref: str | None,
        reward_error: str | None,
    ) -> bool:
        count = await self.database.write(
            update(_S)
            .where(
                _S.c.id == submission_id,
                _S.c.status == SubmissionStatus.APPROVED.value,
                _S.c.reward_tx_ref.is_(None),
            )
            .values(
                reward_amount=reward_amount,
                reward_tx_ref=reward_tx_ref,
                reward_error=reward_error,
                updated_at=_utcnow(),
            )
        )
        return count == 1

    # -- Relay bookkeeping --

    async def find_unrelayed(self, limit: int) -> list[str]:
        rows = await self.database.read(
            select(_S.c.id)
            .where(
                _S.c.status == SubmissionStatus.APPROVED.value,
                _S.c.relay_tx_ref.is_(None),
            )
            .order_by(_S.c.reviewed_at, _S.c.id)
            .limit(limit),
        )
        return [r[0] for r in rows]

    async def claim_relay(
        self, submission_id: str, now: datetime, claim_ttl_seconds: float,
    ) -> bool:
        stale_before = now - timedelta(seconds=claim_ttl_seconds)
        count = await self.database.write(
            update(_S)
            .where(
                _S.c.id == submission_id,
                _S.c.status == SubmissionStatus.APPROVED.value,
                _S.c.relay_tx_ref.is_(None),
                or_(
                    _S.c.relay_claimed_at.is_(None),
                    _S.c.relay_claimed_at < stale_before,
                ),
            )
            .values(relay_claimed_at=now)
        )
        return count == 1

    async def release_relay_claim(self, submission_id: str) -> None:
        await self.database.write(
            update(_S)
            .where(_S.c.id == submission_id, _S.c.relay_tx_ref.is_(None))
            .values(relay_claimed_at=None)
        )

    async def mark_relayed(
        self, submission_id: str, relay_tx_ref: str, reputation_delta: int,
    ) -> bool:
        async with self.database.begin() as conn:
            result = await conn.execute(
                update(_S)
                .where(
                    _S.c.id == submission_id,
                    _S.c.status == SubmissionStatus.APPROVED.value,
                    _S.c.relay_tx_ref.is_(None),
                )
                .values(
                    relay_tx_ref=relay_tx_ref,
                    relay_claimed_at=None,
                    updated_at=_utcnow(),
                )
            )
            if result.rowcount != 1:
                bt.logging.warning({
                    "submission_store": {
                        "mark_relayed": "already_relayed",
                        "submission_id": submission_id,
                    }
                })
                return False

            owner = select(_S.c.user_id).where(_S.c.id == submission_id).scalar_subquery()
            await conn.execute(
                update(_U)
                .where(_U.c.id == owner)
                .values(reputation=_U.c.reputation + reputation_delta)
            )
        return True


__all__ = ["SQLSubmissionStore"]
