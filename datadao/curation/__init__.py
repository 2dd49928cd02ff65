"""Submission model, quality scoring and curation errors.

``CurationService`` lives in ``datadao.curation.service`` and is imported
from there; it depends on the store and approval packages.
"""

from .errors import (
    CurationError,
    InvalidState,
    LedgerError,
    LedgerUnavailable,
    RelayError,
    RewardError,
    SubmissionNotFound,
    ValidationError,
)
from .models import (
    AutoApproveResult,
    CurationStats,
    QualityAssessment,
    RelayJob,
    RelayJobStatus,
    Submission,
    SubmissionMetadata,
    SubmissionStatus,
    User,
)
from .scorer import score_submission

__all__ = [
    "AutoApproveResult",
    "CurationError",
    "CurationStats",
    "InvalidState",
    "LedgerError",
    "LedgerUnavailable",
    "QualityAssessment",
    "RelayError",
    "RelayJob",
    "RelayJobStatus",
    "RewardError",
    "Submission",
    "SubmissionMetadata",
    "SubmissionNotFound",
    "SubmissionStatus",
    "User",
    "ValidationError",
    "score_submission",
]
