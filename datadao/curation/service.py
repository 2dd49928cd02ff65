"""Curation service: intake, scoring, stats and auto-approval."""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any

import bittensor as bt
import numpy as np

from datadao.approval.workflow import ApprovalWorkflow
from datadao.config.curation_params import CurationParams, get_curation_params
from datadao.store.interface import SubmissionStore

from .errors import InvalidState, LedgerError, SubmissionNotFound, ValidationError
from .models import (
    AutoApproveResult,
    CurationStats,
    QualityAssessment,
    Submission,
    SubmissionMetadata,
    SubmissionStatus,
)
from .scorer import score_submission

# Lower bounds, highest first.
QUALITY_BUCKETS: tuple[tuple[str, int], ...] = (
    ("excellent", 90),
    ("good", 70),
    ("fair", 50),
    ("poor", 0),
)

AUTO_CURATOR_ID = "auto-curator"


def _require(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value


class CurationService:
    """Entry point for the curation side of the pipeline."""

    def __init__(
        self,
        store: SubmissionStore,
        workflow: ApprovalWorkflow,
        params: CurationParams | None = None,
    ):
        self.store = store
        self.workflow = workflow
        self.params = params or get_curation_params()

    async def create_submission(
        self,
        user_id: str,
        task_id: str,
        result_hash: str,
        storage_uri: str,
        metadata: dict[str, Any] | None = None,
    ) -> Submission:
        """Register a new PENDING submission.

        Raises:
            ValidationError: a reference is empty, the metadata is malformed
                or the user is unknown. Nothing is written.
        """
        _require("user_id", user_id)
        _require("task_id", task_id)
        _require("result_hash", result_hash)
        _require("storage_uri", storage_uri)
        meta = SubmissionMetadata.from_mapping(metadata)

        if await self.store.get_user(user_id) is None:
            raise ValidationError(f"unknown user {user_id}")

        submission = await self.store.add_submission(
            Submission(
                id=uuid.uuid4().hex,
                user_id=user_id,
                task_id=task_id,
                result_hash=result_hash,
                storage_uri=storage_uri,
                status=SubmissionStatus.PENDING,
                metadata=meta.to_json(),
            )
        )
        bt.logging.info({"submission_created": {"submission_id": submission.id, "user_id": user_id}})
        return submission

    async def process_submission(self, submission_id: str) -> QualityAssessment:
        """Score a submission and persist the score and assessment."""
        submission = await self.store.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFound(submission_id)

        user = await self.store.get_user(submission.user_id)
        reputation = user.reputation if user is not None else 0

        meta = SubmissionMetadata.from_mapping(submission.metadata)
        assessment = score_submission(meta, submitter_reputation=reputation, params=self.params)

        updated = meta.model_copy(update={
            "quality_assessment": assessment,
            "processed_at": datetime.now(timezone.utc),
        })
        await self.store.save_assessment(submission_id, assessment.score, updated.to_json())

        bt.logging.info({
            "submission_scored": {
                "submission_id": submission_id,
                "score": assessment.score,
                "issues": len(assessment.issues),
            }
        })
        return assessment

    async def get_curation_stats(self) -> CurationStats:
        """Aggregate quality over all scored submissions."""
        submissions = await self.store.list_submissions(scored_only=True)
        stats = CurationStats(total_submissions=len(submissions))
        if not submissions:
            return stats

        scores = np.array([s.quality_score for s in submissions], dtype=float)
        stats.average_quality_score = round(float(np.mean(scores)), 2)

        remaining = np.ones(len(scores), dtype=bool)
        for name, lower in QUALITY_BUCKETS:
            in_bucket = remaining & (scores >= lower)
            stats.quality_distribution[name] = int(np.count_nonzero(in_bucket))
            remaining &= ~in_bucket

        issues: Counter[str] = Counter()
        for s in submissions:
            assessment = s.quality_assessment
            if assessment is not None:
                issues.update(assessment.issues)
        stats.common_issues = dict(issues)
        return stats

    async def auto_approve_high_quality(
        self, threshold: int = 85, reviewer_id: str = AUTO_CURATOR_ID,
    ) -> AutoApproveResult:
        """Approve every PENDING submission scoring at least ``threshold``.

        Items that fail (ledger error, lost race) are logged and skipped.
        """
        candidates = await self.store.list_submissions(
            status=SubmissionStatus.PENDING, min_score=threshold,
        )
        result = AutoApproveResult(considered_count=len(candidates))

        for submission in candidates:
            try:
                await self.workflow.approve(submission.id, reviewer_id)
            except (LedgerError, InvalidState) as e:
                result.failed_ids.append(submission.id)
                bt.logging.warning({
                    "auto_approve_skipped": {"submission_id": submission.id, "error": str(e)}
                })
                continue
            result.approved_count += 1

        bt.logging.info({
            "auto_approve": {
                "threshold": threshold,
                "considered": result.considered_count,
                "approved": result.approved_count,
            }
        })
        return result


__all__ = ["AUTO_CURATOR_ID", "CurationService", "QUALITY_BUCKETS"]
