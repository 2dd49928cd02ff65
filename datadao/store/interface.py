"""SubmissionStore protocol - the only way the pipeline touches persistence.

Implementations: SQLSubmissionStore (SQLAlchemy, PostgreSQL or SQLite).

Every state transition is a guarded conditional update that reports
whether it won; callers turn a lost guard into ``InvalidState`` rather
than taking a lock.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from datadao.curation.models import Submission, SubmissionStatus, User


@runtime_checkable
class SubmissionStore(Protocol):
    """Abstract interface for submission and user persistence."""

    async def add_user(self, user: User) -> None:
        ...

    async def get_user(self, user_id: str) -> User | None:
        ...

    async def add_submission(self, submission: Submission) -> Submission:
        """Insert a new submission. Returns it with timestamps set."""
        ...

    async def get_submission(self, submission_id: str) -> Submission | None:
        ...

    async def list_submissions(
        self,
        status: SubmissionStatus | None = None,
        min_score: int | None = None,
        scored_only: bool = False,
        limit: int | None = None,
    ) -> list[Submission]:
        """List submissions, oldest first."""
        ...

    async def save_assessment(
        self, submission_id: str, quality_score: int, metadata: dict[str, Any],
    ) -> bool:
        """Persist a quality score and the metadata carrying its assessment."""
        ...

    async def claim_review(
        self, submission_id: str, now: datetime, claim_ttl_seconds: float,
    ) -> bool:
        """Mark a PENDING submission as being decided unless a fresh claim exists."""
        ...

    async def release_review_claim(self, submission_id: str) -> None:
        ...

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
        """PENDING -> APPROVED. False if the submission was not PENDING."""
        ...

    async def mark_rejected(
        self, submission_id: str, *, reviewer_id: str, reviewed_at: datetime,
    ) -> bool:
        """PENDING -> REJECTED. False if the submission was not PENDING."""
        ...

    async def record_reward(
        self,
        submission_id: str,
        *,
        reward_amount: str | None,
        reward_tx_ref: str | None,
        reward_error: str | None,
    ) -> bool:
        """Overwrite reward fields of an APPROVED, not-yet-rewarded submission."""
        ...

    async def find_unrelayed(self, limit: int) -> list[str]:
        """Ids with status=APPROVED and no relay_tx_ref, oldest first."""
        ...

    async def claim_relay(
        self, submission_id: str, now: datetime, claim_ttl_seconds: float,
    ) -> bool:
        """Set the in-flight marker unless a fresh claim already exists."""
        ...

    async def release_relay_claim(self, submission_id: str) -> None:
        ...

    async def mark_relayed(
        self, submission_id: str, relay_tx_ref: str, reputation_delta: int,
    ) -> bool:
        """Record the relay marker and bump the submitter's reputation once."""
        ...


__all__ = ["SubmissionStore"]
