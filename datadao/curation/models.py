"""Pydantic models for submissions, users, quality assessments and relay jobs."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from .errors import ValidationError


# ---------------------------------------------------------------------------
# Lifecycle enums
# ---------------------------------------------------------------------------


class SubmissionStatus(str, Enum):
    """Submission lifecycle. Only PENDING may transition."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RelayJobStatus(str, Enum):
    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Quality assessment
# ---------------------------------------------------------------------------


VALID_SCORE_THRESHOLD = 50


class QualityAssessment(BaseModel):
    """Result of scoring one submission's metadata."""

    score: int = Field(ge=0, le=100)
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid(self) -> bool:
        return self.score >= VALID_SCORE_THRESHOLD


# ---------------------------------------------------------------------------
# Submission metadata
# ---------------------------------------------------------------------------


class SubmissionMetadata(BaseModel):
    """Contributor-supplied description of a submitted artifact.

    Accepts snake_case or camelCase keys (``data_type`` / ``dataType``).
    Unknown keys are preserved so that writing the metadata back after
    scoring never drops client data.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    title: str | None = None
    description: str | None = None
    data_type: str | None = None
    contribution_type: str | None = None
    tags: list[str] | None = None
    license: str | None = None
    file_info: dict[str, Any] | str | None = None
    quality_assessment: QualityAssessment | None = None
    processed_at: datetime | None = None

    @classmethod
    def from_mapping(cls, data: Any) -> SubmissionMetadata:
        """Parse raw metadata, raising ValidationError if it is malformed."""
        if isinstance(data, SubmissionMetadata):
            return data
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValidationError(
                f"metadata must be a mapping, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(dict(data))
        except pydantic.ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise ValidationError(f"malformed metadata fields: {', '.join(fields)}") from e

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------


class User(BaseModel):
    """Contributor account as seen by the pipeline."""

    id: str
    primary_address: str | None = None
    secondary_address: str | None = None
    reputation: int = 0


class Submission(BaseModel):
    """One contributed artifact and its review/reward/relay bookkeeping."""

    id: str
    user_id: str
    task_id: str
    result_hash: str
    storage_uri: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    quality_score: int | None = Field(default=None, ge=0, le=100)
    metadata: dict[str, Any] = Field(default_factory=dict)

    reward_amount: str | None = None
    reward_tx_ref: str | None = None
    reward_error: str | None = None

    approval_tx_ref: str | None = None
    reviewer_id: str | None = None
    reviewed_at: datetime | None = None
    review_claimed_at: datetime | None = None

    relay_tx_ref: str | None = None
    relay_claimed_at: datetime | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def relay_eligible(self) -> bool:
        return self.status == SubmissionStatus.APPROVED and self.relay_tx_ref is None

    @property
    def quality_assessment(self) -> QualityAssessment | None:
        raw = self.metadata.get("quality_assessment") or self.metadata.get("qualityAssessment")
        if not raw:
            return None
        return QualityAssessment.model_validate(raw)


class RelayJob(BaseModel):
    """Durable queue entry. Carries only the submission id."""

    id: int
    submission_id: str
    status: RelayJobStatus
    attempts: int = 0
    max_attempts: int = 3
    available_at: datetime | None = None
    last_error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class CurationStats(BaseModel):
    """Aggregate view over all scored submissions."""

    total_submissions: int = 0
    average_quality_score: float = 0.0
    quality_distribution: dict[str, int] = Field(
        default_factory=lambda: {"excellent": 0, "good": 0, "fair": 0, "poor": 0}
    )
    common_issues: dict[str, int] = Field(default_factory=dict)


class AutoApproveResult(BaseModel):
    approved_count: int = 0
    considered_count: int = 0
    failed_ids: list[str] = Field(default_factory=list)


__all__ = [
    "AutoApproveResult",
    "CurationStats",
    "QualityAssessment",
    "RelayJob",
    "RelayJobStatus",
    "Submission",
    "SubmissionMetadata",
    "SubmissionStatus",
    "User",
    "VALID_SCORE_THRESHOLD",
]
