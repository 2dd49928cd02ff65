"""Approval workflow: the PENDING -> APPROVED | REJECTED state machine.

approve():
  1. guard: submission exists, is PENDING and unclaimed  (InvalidState)
  2. record approval on the primary ledger, no retry     (LedgerError, claim released)
  3. mint the reward; failure is recorded, not raised    (reward_error)
  4. persist APPROVED + reward fields behind a PENDING guard
  5. hand the submission to the relay queue (best effort; the sweep is the backstop)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import bittensor as bt

from datadao.curation.errors import (
    InvalidState,
    LedgerError,
    SubmissionNotFound,
    ValidationError,
)
from datadao.curation.models import Submission, SubmissionStatus
from datadao.ledger.interface import PrimaryLedger, TokenLedger
from datadao.store.interface import SubmissionStore

from .rewards import RewardDistributor, RewardOutcome, RewardPolicy

if TYPE_CHECKING:
    from datadao.relay.sweep import RelayEnqueuer


@dataclass
class ApprovalResult:
    """Outcome of an approval. ``warnings`` carries non-fatal reward problems."""

    submission: Submission
    approval_tx_ref: Optional[str]
    reward: RewardOutcome
    reviewer_reward: Optional[RewardOutcome] = None
    warnings: list[str] = field(default_factory=list)


def _reward_reason(submission_id: str, role: str) -> str:
    return f"{role}_reward:{submission_id}"


class ApprovalWorkflow:
    """Drives review decisions through the ledgers and the store."""

    def __init__(
        self,
        store: SubmissionStore,
        primary_ledger: PrimaryLedger,
        token_ledger: TokenLedger,
        reward_policy: RewardPolicy,
        relay: RelayEnqueuer | None = None,
        call_timeout: float = 30.0,
        claim_ttl_seconds: float = 300.0,
    ):
        self.store = store
        self.primary_ledger = primary_ledger
        self.rewards = RewardDistributor(token_ledger, call_timeout=call_timeout)
        self.reward_policy = reward_policy
        self.relay = relay
        self.call_timeout = call_timeout
        self.claim_ttl_seconds = claim_ttl_seconds

    async def _load_pending(self, submission_id: str, reviewer_id: str) -> Submission:
        if not reviewer_id:
            raise ValidationError("reviewer_id is required")
        submission = await self.store.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFound(submission_id)
        if submission.status != SubmissionStatus.PENDING:
            raise InvalidState(
                f"Submission {submission_id} is {submission.status.value}, expected PENDING"
            )
        return submission

    async def _claim(self, submission_id: str) -> None:
        now = datetime.now(timezone.utc)
        if not await self.store.claim_review(submission_id, now, self.claim_ttl_seconds):
            raise InvalidState(f"Submission {submission_id} already has a review in progress")

    async def _record_approval(self, submission_id: str) -> str:
        try:
            return await asyncio.wait_for(
                self.primary_ledger.record_approval(submission_id),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError as e:
            raise LedgerError(
                f"approval for {submission_id} timed out after {self.call_timeout}s"
            ) from e
        except LedgerError:
            raise
        except Exception as e:
            raise LedgerError(f"approval for {submission_id} failed: {e}") from e

    async def approve(self, submission_id: str, reviewer_id: str) -> ApprovalResult:
        """Approve a PENDING submission and mint its reward.

        Raises:
            ValidationError: reviewer_id missing.
            InvalidState: submission missing, not PENDING, or being decided concurrently.
            LedgerError: primary-ledger approval failed; nothing was persisted.
        """
        submission = await self._load_pending(submission_id, reviewer_id)
        await self._claim(submission_id)

        try:
            approval_tx_ref = await self._record_approval(submission_id)
        except LedgerError as e:
            bt.logging.error({
                "approval_ledger_error": {"submission_id": submission_id, "error": str(e)}
            })
            await self.store.release_review_claim(submission_id)
            raise

        plan = self.reward_policy(submission)
        submitter = await self.store.get_user(submission.user_id)
        reward = await self.rewards.mint(
            submitter, plan.submitter_amount, _reward_reason(submission_id, "submitter"),
        )

        warnings: list[str] = []
        if not reward.ok:
            warnings.append(f"reward pending: {reward.error}")

        reviewer_reward = None
        if plan.reviewer_amount:
            reviewer = await self.store.get_user(reviewer_id)
            reviewer_reward = await self.rewards.mint(
                reviewer, plan.reviewer_amount, _reward_reason(submission_id, "reviewer"),
            )
            if not reviewer_reward.ok:
                warnings.append(f"reviewer reward failed: {reviewer_reward.error}")

        won = await self.store.mark_approved(
            submission_id,
            reviewer_id=reviewer_id,
            reviewed_at=datetime.now(timezone.utc),
            approval_tx_ref=approval_tx_ref,
            quality_score=submission.quality_score,
            reward_amount=reward.amount,
            reward_tx_ref=reward.tx_ref,
            reward_error=reward.error,
        )
        if not won:
            # Our review claim expired and another decision landed first.
            bt.logging.error({
                "approval_race_lost": {
                    "submission_id": submission_id,
                    "approval_tx_ref": approval_tx_ref,
                    "reward_tx_ref": reward.tx_ref,
                }
            })
            raise InvalidState(f"Submission {submission_id} is no longer PENDING")

        updated = await self.store.get_submission(submission_id)
        bt.logging.info({
            "submission_approved": {
                "submission_id": submission_id,
                "reviewer": reviewer_id,
                "approval_tx": approval_tx_ref,
                "reward_tx": reward.tx_ref,
                "reward_error": reward.error,
            }
        })

        if self.relay is not None:
            try:
                await self.relay.enqueue_relay(submission_id)
            except Exception as e:
                bt.logging.warning({
                    "approval_enqueue_relay_error": {"submission_id": submission_id, "error": str(e)}
                })

        return ApprovalResult(
            submission=updated or submission,
            approval_tx_ref=approval_tx_ref,
            reward=reward,
            reviewer_reward=reviewer_reward,
            warnings=warnings,
        )

    async def reject(self, submission_id: str, reviewer_id: str) -> Submission:
        """Reject a PENDING submission. No ledger calls, no reward, no relay."""
        submission = await self._load_pending(submission_id, reviewer_id)
        await self._claim(submission_id)
        won = await self.store.mark_rejected(
            submission_id,
            reviewer_id=reviewer_id,
            reviewed_at=datetime.now(timezone.utc),
        )
        if not won:
            raise InvalidState(f"Submission {submission_id} is no longer PENDING")

        bt.logging.info({"submission_rejected": {"submission_id": submission_id, "reviewer": reviewer_id}})
        updated = await self.store.get_submission(submission_id)
        return updated or submission

    async def retry_reward(self, submission_id: str) -> ApprovalResult:
        """Re-run the submitter mint for an approved submission whose reward failed.

        Raises:
            InvalidState: submission missing, not APPROVED, or already rewarded.
        """
        submission = await self.store.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFound(submission_id)
        if submission.status != SubmissionStatus.APPROVED:
            raise InvalidState(f"Submission {submission_id} is {submission.status.value}, expected APPROVED")
        if submission.reward_tx_ref is not None:
            raise InvalidState(f"Submission {submission_id} already rewarded")

        plan = self.reward_policy(submission)
        submitter = await self.store.get_user(submission.user_id)
        reward = await self.rewards.mint(
            submitter, plan.submitter_amount, _reward_reason(submission_id, "submitter"),
        )
        won = await self.store.record_reward(
            submission_id,
            reward_amount=reward.amount,
            reward_tx_ref=reward.tx_ref,
            reward_error=reward.error,
        )
        if not won:
            raise InvalidState(f"Submission {submission_id} was rewarded concurrently")

        bt.logging.info({
            "reward_retry": {
                "submission_id": submission_id,
                "reward_tx": reward.tx_ref,
                "reward_error": reward.error,
            }
        })
        updated = await self.store.get_submission(submission_id)
        return ApprovalResult(
            submission=updated or submission,
            approval_tx_ref=submission.approval_tx_ref,
            reward=reward,
            warnings=[] if reward.ok else [f"reward pending: {reward.error}"],
        )


__all__ = ["ApprovalResult", "ApprovalWorkflow"]
